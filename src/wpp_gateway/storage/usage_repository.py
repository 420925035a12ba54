"""PostgreSQL persistence for per-session daily send counters."""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wpp_gateway.storage.orm import SessionUsageRecord


class SessionUsageRepository:
    """Session counter queries within a caller-managed transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def consume(self, session_name: str, limit: int, today: date) -> int | None:
        """Guarded upsert: first send of the day inserts count=1, later
        sends increment only while ``count < limit``.

        Returns:
            The new count, or None when the guard rejected the update.
        """
        if limit <= 0:
            return None
        stmt = (
            pg_insert(SessionUsageRecord)
            .values(session_name=session_name, usage_date=today, count=1)
            .on_conflict_do_update(
                index_elements=[
                    SessionUsageRecord.session_name,
                    SessionUsageRecord.usage_date,
                ],
                set_={"count": SessionUsageRecord.count + 1},
                where=SessionUsageRecord.count < limit,
            )
            .returning(SessionUsageRecord.count)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def release(self, session_name: str, today: date) -> None:
        stmt = (
            update(SessionUsageRecord)
            .where(
                SessionUsageRecord.session_name == session_name,
                SessionUsageRecord.usage_date == today,
            )
            .values(count=func.greatest(SessionUsageRecord.count - 1, 0))
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def usage(self, session_name: str, today: date) -> int:
        stmt = select(SessionUsageRecord.count).where(
            SessionUsageRecord.session_name == session_name,
            SessionUsageRecord.usage_date == today,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() or 0


class SqlSessionCounterStore:
    """SessionCounterStore backed by PostgreSQL, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def consume(self, session_name: str, limit: int, today: date) -> int | None:
        async with self._session_factory() as db:
            used = await SessionUsageRepository(db).consume(session_name, limit, today)
            await db.commit()
            return used

    async def release(self, session_name: str, today: date) -> None:
        async with self._session_factory() as db:
            await SessionUsageRepository(db).release(session_name, today)
            await db.commit()

    async def usage(self, session_name: str, today: date) -> int:
        async with self._session_factory() as db:
            return await SessionUsageRepository(db).usage(session_name, today)
