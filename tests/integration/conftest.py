"""Shared fixtures for integration tests requiring live infrastructure."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tests.integration.seeds import make_test_account
from wpp_gateway.config import get_settings
from wpp_gateway.models.account import Account
from wpp_gateway.storage.orm import AccountRecord, SessionRecord, SessionUsageRecord

# ── Engine (per test, bound to the test event loop) ────────────────


@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async engine from settings."""
    engine = create_async_engine(
        get_settings().database_url,
        pool_size=10,
        max_overflow=10,
    )
    yield engine
    await engine.dispose()


# ── Session factory ────────────────────────────────────────────────


@pytest.fixture()
def session_factory(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Session with savepoint rollback ───────────────────────────────


@pytest.fixture()
async def db_session(
    async_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession]:
    """Provide a session wrapped in a transaction, rolled back after test.

    Suitable for repository tests that use ``flush()`` but NOT ``commit()``.
    Store-level tests (which commit per call) should use ``committed_account``.
    """
    async with async_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)

        yield session

        await session.close()
        await trans.rollback()


# ── Committed seeds (real commit + DELETE cleanup) ─────────────────


@pytest.fixture()
async def committed_account(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[Account]:
    """Insert an account with a real commit; cleans up its sessions and counters.

    Session names created by the test should start with ``wpp_it_``.
    """
    account = make_test_account()
    async with session_factory() as session:
        session.add(
            AccountRecord(
                account_key=account.account_key,
                key_prefix=account.key_prefix,
                name=account.name,
                source_kind=account.source_kind,
                daily_limit=account.daily_limit,
            )
        )
        await session.commit()

    yield account

    async with session_factory() as session:
        await session.execute(
            delete(SessionUsageRecord).where(
                SessionUsageRecord.session_name.like("wpp_it_%")
            )
        )
        await session.execute(
            delete(SessionRecord).where(
                SessionRecord.owner_account_key == account.account_key
            )
        )
        await session.execute(
            delete(AccountRecord).where(
                AccountRecord.account_key == account.account_key
            )
        )
        await session.commit()
