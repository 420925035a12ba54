"""In-process store backend.

Thread-safe via Lock, single instance only. Each counter operation is a
compare-and-increment inside one critical section with no awaits, so it
behaves like the row lock a conditional UPDATE takes in PostgreSQL.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, date, datetime
from threading import Lock

from wpp_gateway.models.account import Account
from wpp_gateway.models.session import Session
from wpp_gateway.storage.base import PhoneAlreadyBoundError


class InMemoryAccountStore:
    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = Lock()

    async def get(self, account_key: str) -> Account | None:
        with self._lock:
            return self._accounts.get(account_key)

    async def get_or_create(self, account: Account) -> Account:
        with self._lock:
            existing = self._accounts.get(account.account_key)
            if existing is not None:
                return existing
            stored = dataclasses.replace(
                account, created_at=account.created_at or datetime.now(UTC)
            )
            self._accounts[account.account_key] = stored
            return stored

    async def list_all(self) -> list[Account]:
        with self._lock:
            return sorted(self._accounts.values(), key=lambda a: a.name)

    async def consume(
        self, account_key: str, limit: int | None, today: date
    ) -> int | None:
        with self._lock:
            account = self._accounts.get(account_key)
            if account is None:
                return None
            used = account.usage_on(today)
            if limit is not None and used >= limit:
                return None
            self._accounts[account_key] = dataclasses.replace(
                account, daily_usage=used + 1, usage_reset_date=today
            )
            return used + 1

    async def release(self, account_key: str, today: date) -> None:
        with self._lock:
            account = self._accounts.get(account_key)
            if account is None or account.usage_reset_date != today:
                return
            self._accounts[account_key] = dataclasses.replace(
                account, daily_usage=max(account.daily_usage - 1, 0)
            )

    async def usage(self, account_key: str, today: date) -> int:
        with self._lock:
            account = self._accounts.get(account_key)
            return account.usage_on(today) if account else 0


class InMemorySessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()

    async def get(self, session_name: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_name)

    async def get_by_phone(self, phone: str) -> Session | None:
        with self._lock:
            return next(
                (s for s in self._sessions.values() if s.phone == phone), None
            )

    async def insert(self, session: Session) -> Session:
        with self._lock:
            taken = session.session_name in self._sessions or any(
                s.phone == session.phone for s in self._sessions.values()
            )
            if taken:
                raise PhoneAlreadyBoundError(session.phone)
            now = datetime.now(UTC)
            stored = dataclasses.replace(session, created_at=now, updated_at=now)
            self._sessions[session.session_name] = stored
            return stored

    async def update(
        self,
        session_name: str,
        *,
        lifecycle_state: str | None = None,
        provider_token: str | None = None,
    ) -> Session | None:
        with self._lock:
            current = self._sessions.get(session_name)
            if current is None:
                return None
            changes: dict[str, object] = {"updated_at": datetime.now(UTC)}
            if lifecycle_state is not None:
                changes["lifecycle_state"] = lifecycle_state
            if provider_token is not None:
                changes["provider_token"] = provider_token
            updated = dataclasses.replace(current, **changes)  # type: ignore[arg-type]
            self._sessions[session_name] = updated
            return updated

    async def delete(self, session_name: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_name, None) is not None

    async def list_for_owner(self, account_key: str) -> list[Session]:
        with self._lock:
            return [
                s for s in self._sessions.values() if s.owner_account_key == account_key
            ]


class InMemorySessionCounterStore:
    def __init__(self) -> None:
        self._counts: dict[tuple[str, date], int] = {}
        self._lock = Lock()

    async def consume(self, session_name: str, limit: int, today: date) -> int | None:
        key = (session_name, today)
        with self._lock:
            used = self._counts.get(key, 0)
            if used >= limit:
                return None
            self._counts[key] = used + 1
            return used + 1

    async def release(self, session_name: str, today: date) -> None:
        key = (session_name, today)
        with self._lock:
            if self._counts.get(key, 0) > 0:
                self._counts[key] -= 1

    async def usage(self, session_name: str, today: date) -> int:
        with self._lock:
            return self._counts.get((session_name, today), 0)
