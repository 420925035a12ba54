"""Tenant account record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class SourceKind(StrEnum):
    """How an account authenticates. Mirrors ORM source_kind column."""

    INTERNAL = "INTERNAL"
    PARTNER_PROXY = "PARTNER_PROXY"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Account:
    """Authenticated tenant identity.

    ``account_key`` is the SHA-256 digest of the bearer credential; the raw
    credential never reaches storage. ``daily_limit=None`` means unlimited.
    """

    account_key: str
    key_prefix: str
    name: str
    source_kind: SourceKind
    daily_limit: int | None
    daily_usage: int = 0
    usage_reset_date: date | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.source_kind == SourceKind.ADMIN

    def usage_on(self, today: date) -> int:
        """Usage attributable to ``today``; a stale reset date reads as 0."""
        if self.usage_reset_date != today:
            return 0
        return self.daily_usage
