"""WPPConnect server client over httpx."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from wpp_gateway.provider.base import ProviderCallError, ProviderGateway

logger = structlog.get_logger()

# The request never reached the provider for these; anything else may have.
_NOT_DISPATCHED = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class WppConnectClient(ProviderGateway):
    """Async client for a WPPConnect server.

    One pooled ``httpx.AsyncClient`` is shared by all calls. Pass
    ``transport`` to substitute a mock transport in tests.
    """

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        session: str,
        token: str | None = None,
        json: Any = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self._client.request(
                method, path, headers=headers, json=json
            )
        except httpx.TransportError as exc:
            dispatched = not isinstance(exc, _NOT_DISPATCHED)
            logger.warning(
                "provider_request_failed",
                session=session,
                path=path,
                error=type(exc).__name__,
                dispatched=dispatched,
            )
            raise ProviderCallError(
                type(exc).__name__, dispatched=dispatched
            ) from exc

        if response.is_error:
            body = _decode(response)
            logger.warning(
                "provider_request_failed",
                session=session,
                path=path,
                status_code=response.status_code,
            )
            raise ProviderCallError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderCallError(
                "malformed provider response", status_code=response.status_code
            ) from exc

    async def generate_token(self, session: str) -> str:
        data = await self._json(
            "POST",
            f"/api/{session}/{self._secret_key}/generate-token",
            session=session,
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ProviderCallError("token missing from provider response", body=data)
        return str(token)

    async def start_session(self, session: str, token: str) -> dict[str, Any]:
        return await self._json(
            "POST",
            f"/api/{session}/start-session",
            session=session,
            token=token,
            json={"session": session, "waitQrCode": False, "webhook": ""},
        )

    async def status_session(self, session: str, token: str) -> dict[str, Any]:
        return await self._json(
            "GET", f"/api/{session}/status-session", session=session, token=token
        )

    async def check_connection(self, session: str, token: str) -> bool:
        data = await self._json(
            "GET",
            f"/api/{session}/check-connection-session",
            session=session,
            token=token,
        )
        return isinstance(data, dict) and data.get("status") is True

    async def qrcode_image(self, session: str, token: str) -> bytes:
        response = await self._request(
            "GET", f"/api/{session}/qrcode-session", session=session, token=token
        )
        return response.content

    async def logout_session(self, session: str, token: str) -> None:
        await self._request(
            "POST", f"/api/{session}/logout-session", session=session, token=token
        )

    async def close_session(self, session: str, token: str) -> None:
        await self._request(
            "POST", f"/api/{session}/close-session", session=session, token=token
        )

    async def send(
        self, session: str, token: str, endpoint: str, body: dict[str, Any]
    ) -> Any:
        return await self._json(
            "POST",
            f"/api/{session}/{endpoint}",
            session=session,
            token=token,
            json=body,
        )

    async def all_unread_messages(self, session: str, token: str) -> Any:
        return await self._json(
            "GET",
            f"/api/{session}/all-unread-messages",
            session=session,
            token=token,
        )

    async def all_messages_in_chat(
        self, session: str, token: str, phone: str
    ) -> Any:
        return await self._json(
            "GET",
            f"/api/{session}/all-messages-in-chat/{phone}",
            session=session,
            token=token,
        )


def _decode(response: httpx.Response) -> Any:
    """Best-effort body decode for error echoing."""
    try:
        return response.json()
    except ValueError:
        return response.text or None
