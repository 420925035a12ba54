"""Dual daily quota enforcement.

Two independent counters guard every send: the account's own daily
limit and a per-session anti-abuse ceiling. Consumption is a reservation
taken before the provider call; callers release it when the call is
never dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import structlog

from wpp_gateway.clock import Clock, make_clock
from wpp_gateway.errors import QuotaExceededError, QuotaScope
from wpp_gateway.storage.base import AccountStore, SessionCounterStore

logger = structlog.get_logger()

DEFAULT_SESSION_DAILY_LIMIT = 450


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of one check-and-consume.

    ``used`` is the counter after the call: incremented when allowed,
    unchanged when denied. ``limit=None`` means unlimited.
    """

    allowed: bool
    scope: QuotaScope
    used: int
    limit: int | None

    def to_error(self, session: str | None = None) -> QuotaExceededError:
        return QuotaExceededError(
            scope=self.scope,
            used=self.used,
            limit=self.limit if self.limit is not None else 0,
            session=session,
        )


class QuotaLedger:
    """Atomic check-and-consume over account and session counters.

    The ledger holds no counters itself; atomicity comes from the
    stores' conditional updates.
    """

    def __init__(
        self,
        accounts: AccountStore,
        session_counters: SessionCounterStore,
        *,
        session_daily_limit: int = DEFAULT_SESSION_DAILY_LIMIT,
        clock: Clock | None = None,
    ) -> None:
        self._accounts = accounts
        self._session_counters = session_counters
        self._session_daily_limit = session_daily_limit
        self._clock = clock or make_clock()

    @property
    def session_daily_limit(self) -> int:
        return self._session_daily_limit

    def today(self) -> date:
        return self._clock()

    async def check_and_consume(
        self,
        scope: QuotaScope,
        key: str,
        limit: int | None = None,
        today: date | None = None,
    ) -> QuotaDecision:
        """Reserve one unit on ``key`` if the counter is below ``limit``.

        Args:
            scope: Which counter family ``key`` belongs to.
            key: ``account_key`` or ``session_name``.
            limit: Ceiling for this counter. None means unlimited for the
                account scope and the configured anti-abuse ceiling for
                the session scope.
            today: Override of the ledger clock.
        """
        day = today or self._clock()
        if scope == QuotaScope.SESSION and limit is None:
            limit = self._session_daily_limit

        if limit is not None and limit <= 0:
            used = await self.usage(scope, key, day)
            return self._denied(scope, key, used, limit)

        if scope == QuotaScope.ACCOUNT:
            consumed = await self._accounts.consume(key, limit, day)
        else:
            ceiling = self._session_daily_limit if limit is None else limit
            consumed = await self._session_counters.consume(key, ceiling, day)

        if consumed is None:
            used = await self.usage(scope, key, day)
            return self._denied(scope, key, used, limit)
        return QuotaDecision(allowed=True, scope=scope, used=consumed, limit=limit)

    async def release(
        self, scope: QuotaScope, key: str, today: date | None = None
    ) -> None:
        """Undo one unit reserved today; floors at zero."""
        day = today or self._clock()
        if scope == QuotaScope.ACCOUNT:
            await self._accounts.release(key, day)
        else:
            await self._session_counters.release(key, day)

    async def usage(
        self, scope: QuotaScope, key: str, today: date | None = None
    ) -> int:
        day = today or self._clock()
        if scope == QuotaScope.ACCOUNT:
            return await self._accounts.usage(key, day)
        return await self._session_counters.usage(key, day)

    def _denied(
        self, scope: QuotaScope, key: str, used: int, limit: int | None
    ) -> QuotaDecision:
        logger.info(
            "quota_denied", scope=str(scope), key=key[:12], used=used, limit=limit
        )
        return QuotaDecision(allowed=False, scope=scope, used=used, limit=limit)
