"""Store contracts shared by the PostgreSQL and in-memory backends.

Counter operations (``consume``/``release``) must be atomic in the
backing store: a single conditional statement in SQL, a single critical
section in memory. Callers never read-then-write a counter.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from wpp_gateway.models.account import Account
from wpp_gateway.models.session import Session


class PhoneAlreadyBoundError(Exception):
    """A session for this phone (or session name) already exists."""

    def __init__(self, phone: str) -> None:
        self.phone = phone
        super().__init__(f"phone {phone} already bound to a session")


class AccountStore(Protocol):
    async def get(self, account_key: str) -> Account | None: ...

    async def get_or_create(self, account: Account) -> Account:
        """Insert ``account`` unless its key exists; return the stored row."""
        ...

    async def list_all(self) -> list[Account]: ...

    async def consume(
        self, account_key: str, limit: int | None, today: date
    ) -> int | None:
        """Atomically add one unit of today's usage if below ``limit``.

        Returns:
            Usage after the increment, or None when denied (or no such account).
        """
        ...

    async def release(self, account_key: str, today: date) -> None: ...

    async def usage(self, account_key: str, today: date) -> int: ...


class SessionStore(Protocol):
    async def get(self, session_name: str) -> Session | None: ...

    async def get_by_phone(self, phone: str) -> Session | None: ...

    async def insert(self, session: Session) -> Session:
        """Raises:
        PhoneAlreadyBoundError: phone or session name is taken.
        """
        ...

    async def update(
        self,
        session_name: str,
        *,
        lifecycle_state: str | None = None,
        provider_token: str | None = None,
    ) -> Session | None: ...

    async def delete(self, session_name: str) -> bool: ...

    async def list_for_owner(self, account_key: str) -> list[Session]: ...


class SessionCounterStore(Protocol):
    async def consume(self, session_name: str, limit: int, today: date) -> int | None:
        """Atomically add one send to today's tally if below ``limit``."""
        ...

    async def release(self, session_name: str, today: date) -> None: ...

    async def usage(self, session_name: str, today: date) -> int: ...
