"""Closed error taxonomy returned by the gateway core.

Core components (credential resolution, quota ledger, session registry,
request pipeline) return these as values instead of raising them.
The HTTP layer turns each into a JSON error body via ``to_body()`` and
``status_code``. Exceptions are reserved for I/O failures (caught at
the provider boundary) and genuine internal faults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Machine-readable error kind, echoed in every error response."""

    CREDENTIAL = "credential"
    AUTHORIZATION = "authorization"
    QUOTA_EXCEEDED = "quota_exceeded"
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_NOT_READY = "session_not_ready"
    SESSION_TERMINAL = "session_terminal"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_REJECTED = "provider_rejected"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.CREDENTIAL: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.SESSION_NOT_FOUND: 404,
    ErrorKind.SESSION_NOT_READY: 409,
    ErrorKind.SESSION_TERMINAL: 409,
    ErrorKind.PROVIDER_UNAVAILABLE: 424,
    ErrorKind.PROVIDER_REJECTED: 400,
}


@dataclass(frozen=True, kw_only=True)
class GatewayError:
    """Base of every classified failure."""

    message: str = ""

    @property
    def kind(self) -> ErrorKind:
        raise NotImplementedError

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def context(self) -> dict[str, Any]:
        """Extra fields that let the caller self-diagnose."""
        return {}

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "kind": str(self.kind)}
        body.update({k: v for k, v in self.context().items() if v is not None})
        return body


@dataclass(frozen=True, kw_only=True)
class CredentialError(GatewayError):
    """Missing, unknown, or wrong-origin credential."""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.CREDENTIAL


@dataclass(frozen=True, kw_only=True)
class AuthorizationError(GatewayError):
    """Valid credential, but not allowed to touch this resource."""

    session: str | None = None
    phone: str | None = None

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.AUTHORIZATION

    def context(self) -> dict[str, Any]:
        return {"session": self.session, "phone": self.phone}


class QuotaScope(StrEnum):
    ACCOUNT = "account"
    SESSION = "session"


@dataclass(frozen=True, kw_only=True)
class QuotaExceededError(GatewayError):
    scope: QuotaScope
    used: int
    limit: int
    session: str | None = None
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            text = (
                "account daily limit exceeded"
                if self.scope == QuotaScope.ACCOUNT
                else "session daily limit exceeded (anti-block protection)"
            )
            object.__setattr__(self, "message", text)

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.QUOTA_EXCEEDED

    def context(self) -> dict[str, Any]:
        return {
            "scope": str(self.scope),
            "used": self.used,
            "limit": self.limit,
            "session": self.session,
        }


class SessionStateReason(StrEnum):
    NOT_FOUND = "not_found"
    NOT_READY = "not_ready"
    TERMINAL = "terminal"


_STATE_KINDS: dict[SessionStateReason, ErrorKind] = {
    SessionStateReason.NOT_FOUND: ErrorKind.SESSION_NOT_FOUND,
    SessionStateReason.NOT_READY: ErrorKind.SESSION_NOT_READY,
    SessionStateReason.TERMINAL: ErrorKind.SESSION_TERMINAL,
}


@dataclass(frozen=True, kw_only=True)
class SessionStateError(GatewayError):
    reason: SessionStateReason
    session: str
    state: str | None = None

    @property
    def kind(self) -> ErrorKind:
        return _STATE_KINDS[self.reason]

    def context(self) -> dict[str, Any]:
        return {"session": self.session, "status": self.state}


@dataclass(frozen=True, kw_only=True)
class ProviderUnavailableError(GatewayError):
    """Provider unreachable, timed out, 5xx, or answered garbage."""

    session: str | None = None
    provider_status: int | None = None

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.PROVIDER_UNAVAILABLE

    def context(self) -> dict[str, Any]:
        return {"session": self.session, "provider_status": self.provider_status}


@dataclass(frozen=True, kw_only=True)
class ProviderRejectedError(GatewayError):
    """Provider answered 4xx; its status and body are echoed back."""

    provider_status: int
    provider_body: Any = None
    session: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.PROVIDER_REJECTED

    @property
    def status_code(self) -> int:
        return self.provider_status

    def context(self) -> dict[str, Any]:
        return {
            "session": self.session,
            "provider_status": self.provider_status,
            "provider_response": self.provider_body,
            **self.extra,
        }
