"""Request/response schemas for the API layer.

Send payloads live in ``wpp_gateway.models.payloads``; the route
modules accept those directly.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.models.session import MIN_PHONE_DIGITS, Session, normalize_phone
from wpp_gateway.pipeline import AccountUsage, UsageReport
from wpp_gateway.registry import TeardownResult

# --- Errors ---


class ErrorResponse(BaseModel):
    """Shape of every error body; extra context keys vary by ``kind``."""

    error: str
    kind: str


# --- Sessions ---


class CreateSessionRequest(BaseModel):
    """Request body for ``POST /api/sessions``."""

    phone: str = Field(
        ...,
        description="Phone number that will connect to WhatsApp.",
        examples=["+55 21 99999-8888"],
    )
    description: str | None = Field(
        default=None,
        max_length=500,
        description="Optional label, e.g. ``WhatsApp Sales``.",
    )

    @field_validator("phone")
    @classmethod
    def _digits_only(cls, value: str) -> str:
        digits = normalize_phone(value)
        if len(digits) < MIN_PHONE_DIGITS:
            raise ValueError(f"phone must contain at least {MIN_PHONE_DIGITS} digits")
        return digits


class SessionResponse(BaseModel):
    session: str
    phone: str
    status: str
    description: str | None = None
    created_at: dt.datetime | None = None

    @classmethod
    def from_domain(cls, session: Session) -> SessionResponse:
        return cls(
            session=session.session_name,
            phone=session.phone,
            status=str(session.lifecycle_state),
            description=session.description,
            created_at=session.created_at,
        )


class TeardownResponse(BaseModel):
    session: str
    deleted: bool = True
    provider_cleanup: str = Field(description="``ok`` or ``failed``.")
    provider_error: str | None = None

    @classmethod
    def from_result(cls, result: TeardownResult) -> TeardownResponse:
        return cls.model_validate(result.to_dict())


class QRCodeBase64Response(BaseModel):
    session: str
    mimetype: str = "image/png"
    base64: str


# --- Usage ---


class SessionUsageResponse(BaseModel):
    session: str
    phone: str
    status: str
    used: int
    limit: int


class UsageResponse(BaseModel):
    """Today's usage for the calling account and each of its sessions."""

    date: dt.date
    used: int
    limit: int | None = Field(description="None means unlimited.")
    remaining: int | None
    sessions: list[SessionUsageResponse]

    @classmethod
    def from_report(cls, report: UsageReport) -> UsageResponse:
        return cls(
            date=report.date,
            used=report.used,
            limit=report.limit,
            remaining=report.remaining,
            sessions=[
                SessionUsageResponse(
                    session=s.session,
                    phone=s.phone,
                    status=s.status,
                    used=s.used,
                    limit=s.limit,
                )
                for s in report.sessions
            ],
        )


# --- Admin ---


class AccountCreateRequest(BaseModel):
    """Request body for ``POST /admin/accounts``."""

    name: str = Field(..., min_length=1, max_length=200)
    daily_limit: int | None = Field(
        default=None, ge=0, description="Sends per day; omit for unlimited."
    )
    source_kind: SourceKind = SourceKind.INTERNAL

    @field_validator("source_kind")
    @classmethod
    def _no_partner_accounts(cls, value: SourceKind) -> SourceKind:
        if value == SourceKind.PARTNER_PROXY:
            raise ValueError("partner proxy accounts are provisioned automatically")
        return value


class AccountResponse(BaseModel):
    key_prefix: str
    name: str
    source_kind: SourceKind
    daily_limit: int | None
    used_today: int
    created_at: dt.datetime | None = None

    @classmethod
    def from_usage(cls, item: AccountUsage) -> AccountResponse:
        return cls(
            key_prefix=item.account.key_prefix,
            name=item.account.name,
            source_kind=item.account.source_kind,
            daily_limit=item.account.daily_limit,
            used_today=item.used_today,
            created_at=item.account.created_at,
        )


class AccountCreatedResponse(BaseModel):
    """Returned once at creation. ``api_key`` is never shown again."""

    api_key: str
    key_prefix: str
    name: str
    source_kind: SourceKind
    daily_limit: int | None

    @classmethod
    def from_domain(cls, account: Account, api_key: str) -> AccountCreatedResponse:
        return cls(
            api_key=api_key,
            key_prefix=account.key_prefix,
            name=account.name,
            source_kind=account.source_kind,
            daily_limit=account.daily_limit,
        )
