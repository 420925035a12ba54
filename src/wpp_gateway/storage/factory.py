"""Build the configured store backend."""

from __future__ import annotations

from dataclasses import dataclass

from wpp_gateway.config import Settings, StorageBackend
from wpp_gateway.storage.base import AccountStore, SessionCounterStore, SessionStore
from wpp_gateway.storage.memory import (
    InMemoryAccountStore,
    InMemorySessionCounterStore,
    InMemorySessionStore,
)


@dataclass(frozen=True)
class Stores:
    accounts: AccountStore
    sessions: SessionStore
    session_counters: SessionCounterStore


def create_stores(settings: Settings) -> Stores:
    """Instantiate stores for ``settings.storage_backend``.

    The PostgreSQL backend is imported lazily so the in-memory backend
    never creates a database engine.
    """
    if settings.storage_backend == StorageBackend.MEMORY:
        return Stores(
            accounts=InMemoryAccountStore(),
            sessions=InMemorySessionStore(),
            session_counters=InMemorySessionCounterStore(),
        )

    from wpp_gateway.storage.account_repository import SqlAccountStore
    from wpp_gateway.storage.database import async_session
    from wpp_gateway.storage.session_repository import SqlSessionStore
    from wpp_gateway.storage.usage_repository import SqlSessionCounterStore

    return Stores(
        accounts=SqlAccountStore(async_session),
        sessions=SqlSessionStore(async_session),
        session_counters=SqlSessionCounterStore(async_session),
    )
