"""Tests for message retrieval endpoints."""

from httpx import AsyncClient

from tests.unit.fakes import Factory, FakeProvider
from wpp_gateway.models.session import LifecycleState

PHONE = "5521999998888"
SESSION = f"wpp_{PHONE}"


class TestReceive:
    async def test_unread(
        self,
        client: AsyncClient,
        provider: FakeProvider,
        make_account: Factory,
        make_session: Factory,
    ) -> None:
        account, headers = await make_account()
        await make_session(account, PHONE)
        provider.responses["all_unread_messages"] = {
            "status": "success",
            "response": [{"id": "m1", "body": "hi"}],
        }
        response = await client.get(f"/api/receive/{SESSION}/unread", headers=headers)
        assert response.status_code == 200
        assert response.json()["response"] == [{"id": "m1", "body": "hi"}]

    async def test_chat(
        self,
        client: AsyncClient,
        provider: FakeProvider,
        make_account: Factory,
        make_session: Factory,
    ) -> None:
        account, headers = await make_account()
        await make_session(account, PHONE)
        response = await client.get(
            f"/api/receive/{SESSION}/chat/5511988887777", headers=headers
        )
        assert response.status_code == 200
        assert provider.called("all_messages_in_chat")[0][2] == "5511988887777"

    async def test_not_connected_is_409(
        self, client: AsyncClient, make_account: Factory, make_session: Factory
    ) -> None:
        account, headers = await make_account()
        await make_session(account, PHONE, state=LifecycleState.TOKEN_CREATED)
        response = await client.get(f"/api/receive/{SESSION}/unread", headers=headers)
        assert response.status_code == 409

    async def test_receive_does_not_count(
        self, client: AsyncClient, make_account: Factory, make_session: Factory
    ) -> None:
        account, headers = await make_account()
        await make_session(account, PHONE)
        for _ in range(3):
            await client.get(f"/api/receive/{SESSION}/unread", headers=headers)
        usage = (await client.get("/api/usage", headers=headers)).json()
        assert usage["used"] == 0
