"""PostgreSQL persistence for provider sessions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wpp_gateway.models.session import Session
from wpp_gateway.storage.base import PhoneAlreadyBoundError
from wpp_gateway.storage.orm import SessionRecord


class SessionRepository:
    """Session queries within a caller-managed transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, session_name: str) -> SessionRecord | None:
        stmt = select(SessionRecord).where(SessionRecord.session_name == session_name)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_phone(self, phone: str) -> SessionRecord | None:
        stmt = select(SessionRecord).where(SessionRecord.phone == phone)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def insert(self, session: Session) -> SessionRecord:
        """Insert a new session row.

        Raises:
            PhoneAlreadyBoundError: unique constraint on phone or
                session_name lost to a concurrent insert.
        """
        record = SessionRecord(
            session_name=session.session_name,
            owner_account_key=session.owner_account_key,
            phone=session.phone,
            description=session.description,
            provider_token=session.provider_token,
            lifecycle_state=session.lifecycle_state,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(record)
        except IntegrityError as exc:
            raise PhoneAlreadyBoundError(session.phone) from exc
        await self._session.refresh(record)
        return record

    async def update(self, session_name: str, **values: Any) -> SessionRecord | None:
        stmt = (
            update(SessionRecord)
            .where(SessionRecord.session_name == session_name)
            .values(**values)
            .returning(SessionRecord)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete(self, session_name: str) -> bool:
        stmt = delete(SessionRecord).where(SessionRecord.session_name == session_name)
        result = await self._session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_for_owner(self, account_key: str) -> list[SessionRecord]:
        stmt = (
            select(SessionRecord)
            .where(SessionRecord.owner_account_key == account_key)
            .order_by(SessionRecord.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SqlSessionStore:
    """SessionStore backed by PostgreSQL, one transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, session_name: str) -> Session | None:
        async with self._session_factory() as db:
            record = await SessionRepository(db).get(session_name)
            return record.to_domain() if record else None

    async def get_by_phone(self, phone: str) -> Session | None:
        async with self._session_factory() as db:
            record = await SessionRepository(db).get_by_phone(phone)
            return record.to_domain() if record else None

    async def insert(self, session: Session) -> Session:
        async with self._session_factory() as db:
            record = await SessionRepository(db).insert(session)
            await db.commit()
            return record.to_domain()

    async def update(
        self,
        session_name: str,
        *,
        lifecycle_state: str | None = None,
        provider_token: str | None = None,
    ) -> Session | None:
        values: dict[str, Any] = {}
        if lifecycle_state is not None:
            values["lifecycle_state"] = lifecycle_state
        if provider_token is not None:
            values["provider_token"] = provider_token
        if not values:
            return await self.get(session_name)
        async with self._session_factory() as db:
            record = await SessionRepository(db).update(session_name, **values)
            await db.commit()
            return record.to_domain() if record else None

    async def delete(self, session_name: str) -> bool:
        async with self._session_factory() as db:
            deleted = await SessionRepository(db).delete(session_name)
            await db.commit()
            return deleted

    async def list_for_owner(self, account_key: str) -> list[Session]:
        async with self._session_factory() as db:
            records = await SessionRepository(db).list_for_owner(account_key)
            return [r.to_domain() for r in records]
