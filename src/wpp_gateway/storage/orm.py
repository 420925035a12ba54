"""SQLAlchemy ORM models for gateway state."""

import uuid
from datetime import date, datetime

import uuid_utils as uuid7_lib
from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from wpp_gateway.models.account import Account, SourceKind
from wpp_gateway.models.session import Session


def _uuid7() -> uuid.UUID:
    """Generate a UUIDv7 (time-ordered) for use as default PK value."""
    return uuid.UUID(bytes=uuid7_lib.uuid7().bytes)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class AccountRecord(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    account_key: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    key_prefix: Mapped[str] = mapped_column(String(32))
    name: Mapped[str] = mapped_column(String(200))
    source_kind: Mapped[SourceKind] = mapped_column(
        Enum(
            SourceKind,
            name="source_kind_enum",
            values_callable=lambda e: [m.value for m in e],
        )
    )
    daily_limit: Mapped[int | None] = mapped_column(Integer)
    daily_usage: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    usage_reset_date: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def to_domain(self) -> Account:
        return Account(
            account_key=self.account_key,
            key_prefix=self.key_prefix,
            name=self.name,
            source_kind=SourceKind(self.source_kind),
            daily_limit=self.daily_limit,
            daily_usage=self.daily_usage,
            usage_reset_date=self.usage_reset_date,
            created_at=self.created_at,
        )


class SessionRecord(Base):
    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    session_name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    owner_account_key: Mapped[str] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"), index=True
    )
    phone: Mapped[str] = mapped_column(String(32), unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    provider_token: Mapped[str | None] = mapped_column(Text)
    # Free-form: the provider may report states outside LifecycleState.
    lifecycle_state: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_domain(self) -> Session:
        return Session(
            session_name=self.session_name,
            owner_account_key=self.owner_account_key,
            phone=self.phone,
            lifecycle_state=self.lifecycle_state,
            provider_token=self.provider_token,
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SessionUsageRecord(Base):
    """Per-day send tally. Not tied to the session row by FK, so the
    count survives teardown and re-creation of the same phone."""

    __tablename__ = "session_usage"
    __table_args__ = (
        UniqueConstraint("session_name", "usage_date", name="uq_session_usage_day"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=_uuid7)
    session_name: Mapped[str] = mapped_column(String(100))
    usage_date: Mapped[date] = mapped_column(Date)
    count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
