"""PostgreSQL persistence for accounts and the account-scope quota counter."""

from __future__ import annotations

from datetime import date

from sqlalchemy import ColumnElement, case, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wpp_gateway.models.account import Account
from wpp_gateway.storage.orm import AccountRecord


def _usage_today(today: date) -> ColumnElement[int]:
    """SQL expression for usage attributable to ``today`` (lazy reset)."""
    return case(
        (AccountRecord.usage_reset_date == today, AccountRecord.daily_usage),
        else_=0,
    )


class AccountRepository:
    """Account queries within a caller-managed transaction.

    Writes are single statements; the caller owns commit/rollback.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, account_key: str) -> AccountRecord | None:
        stmt = select(AccountRecord).where(AccountRecord.account_key == account_key)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self, account: Account) -> AccountRecord:
        """Insert the account unless the key exists; race-safe via ON CONFLICT.

        A concurrent duplicate insert becomes a no-op and the existing
        row is returned.
        """
        stmt = (
            pg_insert(AccountRecord)
            .values(
                account_key=account.account_key,
                key_prefix=account.key_prefix,
                name=account.name,
                source_kind=account.source_kind,
                daily_limit=account.daily_limit,
                daily_usage=0,
            )
            .on_conflict_do_nothing(index_elements=[AccountRecord.account_key])
        )
        await self._session.execute(stmt)
        result = await self._session.execute(
            select(AccountRecord).where(
                AccountRecord.account_key == account.account_key
            )
        )
        return result.scalar_one()

    async def list_all(self) -> list[AccountRecord]:
        stmt = select(AccountRecord).order_by(AccountRecord.name)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def consume(
        self, account_key: str, limit: int | None, today: date
    ) -> int | None:
        """Conditional ``UPDATE ... RETURNING``; no row back means denied.

        The reset-on-new-day and the limit check happen in the same
        statement, so concurrent callers serialize on the row lock.
        """
        used = _usage_today(today)
        stmt = (
            update(AccountRecord)
            .where(AccountRecord.account_key == account_key)
            .values(daily_usage=used + 1, usage_reset_date=today)
            .returning(AccountRecord.daily_usage)
            .execution_options(synchronize_session=False)
        )
        if limit is not None:
            stmt = stmt.where(used < limit)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def release(self, account_key: str, today: date) -> None:
        stmt = (
            update(AccountRecord)
            .where(
                AccountRecord.account_key == account_key,
                AccountRecord.usage_reset_date == today,
            )
            .values(daily_usage=func.greatest(AccountRecord.daily_usage - 1, 0))
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def usage(self, account_key: str, today: date) -> int:
        stmt = select(_usage_today(today)).where(
            AccountRecord.account_key == account_key
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() or 0


class SqlAccountStore:
    """AccountStore backed by PostgreSQL.

    Every call runs in its own short transaction, so a consumed unit is
    committed before the provider call it reserves.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, account_key: str) -> Account | None:
        async with self._session_factory() as session:
            record = await AccountRepository(session).get(account_key)
            return record.to_domain() if record else None

    async def get_or_create(self, account: Account) -> Account:
        async with self._session_factory() as session:
            record = await AccountRepository(session).get_or_create(account)
            await session.commit()
            return record.to_domain()

    async def list_all(self) -> list[Account]:
        async with self._session_factory() as session:
            records = await AccountRepository(session).list_all()
            return [r.to_domain() for r in records]

    async def consume(
        self, account_key: str, limit: int | None, today: date
    ) -> int | None:
        async with self._session_factory() as session:
            used = await AccountRepository(session).consume(account_key, limit, today)
            await session.commit()
            return used

    async def release(self, account_key: str, today: date) -> None:
        async with self._session_factory() as session:
            await AccountRepository(session).release(account_key, today)
            await session.commit()

    async def usage(self, account_key: str, today: date) -> int:
        async with self._session_factory() as session:
            return await AccountRepository(session).usage(account_key, today)
