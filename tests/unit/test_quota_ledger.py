"""Tests for dual daily quota enforcement."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from tests.unit.fakes import SESSION_LIMIT, FakeClock
from wpp_gateway.errors import QuotaScope
from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.quota import QuotaLedger
from wpp_gateway.storage.memory import InMemoryAccountStore

ACCOUNT_KEY = "k" * 64


async def _store_account(
    store: InMemoryAccountStore, daily_limit: int | None
) -> Account:
    return await store.get_or_create(
        Account(
            account_key=ACCOUNT_KEY,
            key_prefix="wg_test_aaaaaa",
            name="acme",
            source_kind=SourceKind.INTERNAL,
            daily_limit=daily_limit,
        )
    )


class TestAccountScope:
    async def test_allows_under_limit(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        """Every request under the limit is allowed and counted."""
        await _store_account(account_store, 3)
        for expected in (1, 2, 3):
            decision = await ledger.check_and_consume(
                QuotaScope.ACCOUNT, ACCOUNT_KEY, 3
            )
            assert decision.allowed is True
            assert decision.used == expected

    async def test_denies_at_limit(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        """The request that would exceed the limit is denied; usage unchanged."""
        await _store_account(account_store, 2)
        for _ in range(2):
            await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 2)

        decision = await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 2)
        assert decision.allowed is False
        assert decision.used == 2
        assert decision.limit == 2
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 2

    async def test_unlimited_account(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        """A None limit never denies but still counts usage."""
        await _store_account(account_store, None)
        for _ in range(20):
            decision = await ledger.check_and_consume(
                QuotaScope.ACCOUNT, ACCOUNT_KEY, None
            )
            assert decision.allowed is True
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 20

    async def test_zero_limit_denies_first_request(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        await _store_account(account_store, 0)
        decision = await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 0)
        assert decision.allowed is False
        assert decision.used == 0

    async def test_resets_at_day_boundary(
        self,
        ledger: QuotaLedger,
        account_store: InMemoryAccountStore,
        clock: FakeClock,
    ) -> None:
        """Usage from yesterday does not count against today."""
        await _store_account(account_store, 1)
        first = await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 1)
        assert first.allowed
        assert not (
            await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 1)
        ).allowed

        clock.advance()
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 0
        decision = await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 1)
        assert decision.allowed is True
        assert decision.used == 1

    async def test_release_returns_unit(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        await _store_account(account_store, 1)
        await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 1)
        await ledger.release(QuotaScope.ACCOUNT, ACCOUNT_KEY)
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 0
        again = await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 1)
        assert again.allowed

    async def test_release_floors_at_zero(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        await _store_account(account_store, 5)
        await ledger.release(QuotaScope.ACCOUNT, ACCOUNT_KEY)
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 0

    async def test_release_of_yesterday_ignored(
        self,
        ledger: QuotaLedger,
        account_store: InMemoryAccountStore,
        clock: FakeClock,
    ) -> None:
        """Releasing a reservation taken before midnight does not touch today."""
        await _store_account(account_store, 5)
        reserved_on = clock()
        await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 5)
        clock.advance()
        await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 5)

        await ledger.release(QuotaScope.ACCOUNT, ACCOUNT_KEY, reserved_on)
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 1


class TestSessionScope:
    async def test_default_ceiling_applies(self, ledger: QuotaLedger) -> None:
        """Without an explicit limit the configured anti-block ceiling is used."""
        for _ in range(SESSION_LIMIT):
            decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")
            assert decision.allowed is True

        decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")
        assert decision.allowed is False
        assert decision.used == SESSION_LIMIT
        assert decision.limit == SESSION_LIMIT

    async def test_sessions_counted_independently(self, ledger: QuotaLedger) -> None:
        for _ in range(SESSION_LIMIT):
            await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")
        decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_2")
        assert decision.allowed is True
        assert decision.used == 1

    async def test_explicit_limit_overrides_ceiling(self, ledger: QuotaLedger) -> None:
        await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1", 1)
        decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1", 1)
        assert decision.allowed is False

    async def test_negative_limit_denies(self, ledger: QuotaLedger) -> None:
        decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1", -1)
        assert decision.allowed is False
        assert await ledger.usage(QuotaScope.SESSION, "wpp_1") == 0

    async def test_denial_converts_to_error(self, ledger: QuotaLedger) -> None:
        for _ in range(SESSION_LIMIT):
            await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")
        decision = await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")

        error = decision.to_error("wpp_1")
        assert error.status_code == 429
        assert error.to_body()["session"] == "wpp_1"
        assert error.to_body()["used"] == SESSION_LIMIT

    async def test_explicit_day(self, ledger: QuotaLedger) -> None:
        day = date(2030, 1, 1)
        await ledger.check_and_consume(QuotaScope.SESSION, "wpp_1", today=day)
        assert await ledger.usage(QuotaScope.SESSION, "wpp_1", day) == 1
        assert await ledger.usage(QuotaScope.SESSION, "wpp_1") == 0


class TestConcurrency:
    async def test_concurrent_consume_never_overshoots(
        self, ledger: QuotaLedger, account_store: InMemoryAccountStore
    ) -> None:
        """Exactly ``limit`` of many concurrent requests are admitted."""
        await _store_account(account_store, 7)
        decisions = await asyncio.gather(
            *(
                ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, 7)
                for _ in range(30)
            )
        )
        assert sum(d.allowed for d in decisions) == 7
        assert await ledger.usage(QuotaScope.ACCOUNT, ACCOUNT_KEY) == 7

    async def test_threaded_consume_never_overshoots(
        self, ledger: QuotaLedger
    ) -> None:
        """Store locks hold across worker threads, not just one event loop."""

        def _consume() -> bool:
            decision = asyncio.run(
                ledger.check_and_consume(QuotaScope.SESSION, "wpp_1")
            )
            return decision.allowed

        results = await asyncio.gather(
            *(asyncio.to_thread(_consume) for _ in range(20))
        )
        assert sum(results) == SESSION_LIMIT


@pytest.mark.parametrize("limit", [1, 3])
async def test_account_limit_boundary(
    ledger: QuotaLedger, account_store: InMemoryAccountStore, limit: int
) -> None:
    """The (limit+1)th request is the first one denied."""
    await _store_account(account_store, limit)
    outcomes = [
        (await ledger.check_and_consume(QuotaScope.ACCOUNT, ACCOUNT_KEY, limit)).allowed
        for _ in range(limit + 1)
    ]
    assert outcomes == [True] * limit + [False]
