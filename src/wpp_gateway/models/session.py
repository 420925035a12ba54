"""Provider session record and lifecycle states."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

SESSION_PREFIX = "wpp_"
MIN_PHONE_DIGITS = 10

_NON_DIGITS = re.compile(r"\D")


class LifecycleState(StrEnum):
    """Known session states.

    The provider may report other literal states (e.g. ``INITIALIZING``);
    those are stored uppercased as plain strings and count as not ready.
    """

    CREATED = "CREATED"
    TOKEN_CREATED = "TOKEN_CREATED"
    QRCODE = "QRCODE"
    CONNECTED = "CONNECTED"
    UNKNOWN = "UNKNOWN"
    LOGGED_OUT = "LOGGED_OUT"
    CLOSED = "CLOSED"
    REVOKED = "REVOKED"


TERMINAL_STATES: frozenset[str] = frozenset(
    {LifecycleState.CLOSED, LifecycleState.REVOKED}
)
READY_STATES: frozenset[str] = frozenset({LifecycleState.CONNECTED})


def normalize_phone(raw: str) -> str:
    """Strip everything but digits: ``+55 (21) 99999-8888`` -> ``5521999998888``."""
    return _NON_DIGITS.sub("", raw)


def session_name_for(phone: str) -> str:
    """Deterministic provider session name for a normalized phone."""
    return f"{SESSION_PREFIX}{phone}"


@dataclass(frozen=True)
class Session:
    """Binding of one account and one phone to a provider session."""

    session_name: str
    owner_account_key: str
    phone: str
    lifecycle_state: str = LifecycleState.CREATED
    provider_token: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.lifecycle_state in TERMINAL_STATES

    @property
    def is_ready(self) -> bool:
        return self.lifecycle_state in READY_STATES and self.provider_token is not None

    def owned_by(self, account_key: str) -> bool:
        return self.owner_account_key == account_key
