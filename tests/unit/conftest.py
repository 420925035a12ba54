"""Fixtures for unit tests: in-memory stores, a scripted provider, a fixed clock."""

from __future__ import annotations

from datetime import date

import pytest

from tests.unit.fakes import (
    PARTNER_SECRET,
    SESSION_LIMIT,
    Factory,
    FakeClock,
    FakeProvider,
)
from wpp_gateway.auth.keys import generate_api_key
from wpp_gateway.auth.resolver import CredentialResolver
from wpp_gateway.auth.schemes import InternalKeyScheme, PartnerProxyScheme
from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.models.session import LifecycleState, Session, session_name_for
from wpp_gateway.pipeline import RequestPipeline
from wpp_gateway.quota import QuotaLedger
from wpp_gateway.registry import SessionRegistry
from wpp_gateway.storage.memory import (
    InMemoryAccountStore,
    InMemorySessionCounterStore,
    InMemorySessionStore,
)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(date(2024, 3, 10))


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture()
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def counter_store() -> InMemorySessionCounterStore:
    return InMemorySessionCounterStore()


@pytest.fixture()
def ledger(
    account_store: InMemoryAccountStore,
    counter_store: InMemorySessionCounterStore,
    clock: FakeClock,
) -> QuotaLedger:
    return QuotaLedger(
        account_store,
        counter_store,
        session_daily_limit=SESSION_LIMIT,
        clock=clock,
    )


@pytest.fixture()
def registry(
    session_store: InMemorySessionStore, provider: FakeProvider
) -> SessionRegistry:
    return SessionRegistry(session_store, provider)


@pytest.fixture()
def resolver(account_store: InMemoryAccountStore) -> CredentialResolver:
    return CredentialResolver(
        [
            PartnerProxyScheme(account_store, secret=PARTNER_SECRET),
            InternalKeyScheme(account_store),
        ]
    )


@pytest.fixture()
def pipeline(
    resolver: CredentialResolver,
    ledger: QuotaLedger,
    registry: SessionRegistry,
    provider: FakeProvider,
    account_store: InMemoryAccountStore,
) -> RequestPipeline:
    return RequestPipeline(
        resolver=resolver,
        ledger=ledger,
        registry=registry,
        provider=provider,
        accounts=account_store,
    )


@pytest.fixture()
def make_account(account_store: InMemoryAccountStore) -> Factory:
    """Store a fresh account; returns ``(account, headers)``."""

    async def _make(
        *,
        name: str = "acme",
        daily_limit: int | None = 10,
        source_kind: SourceKind = SourceKind.INTERNAL,
    ) -> tuple[Account, dict[str, str]]:
        raw_key, key_hash, key_prefix = generate_api_key("test")
        account = await account_store.get_or_create(
            Account(
                account_key=key_hash,
                key_prefix=key_prefix,
                name=name,
                source_kind=source_kind,
                daily_limit=daily_limit,
            )
        )
        return account, {"X-Api-Key": raw_key}

    return _make


@pytest.fixture()
def make_session(session_store: InMemorySessionStore) -> Factory:
    """Store a session for ``account``; CONNECTED with a token by default."""

    async def _make(
        account: Account,
        phone: str = "5521999998888",
        *,
        state: str = LifecycleState.CONNECTED,
        token: str | None = "tok-1",
    ) -> Session:
        name = session_name_for(phone)
        await session_store.insert(
            Session(
                session_name=name,
                owner_account_key=account.account_key,
                phone=phone,
            )
        )
        updated = await session_store.update(
            name, lifecycle_state=state, provider_token=token
        )
        assert updated is not None
        return updated

    return _make
