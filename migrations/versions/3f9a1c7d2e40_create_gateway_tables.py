"""create_gateway_tables

Accounts, provider sessions and per-session daily usage counters.

Revision ID: 3f9a1c7d2e40
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

source_kind_enum = sa.Enum(
    "INTERNAL", "PARTNER_PROXY", "ADMIN", name="source_kind_enum"
)


def upgrade() -> None:
    """Create accounts, sessions and session_usage."""
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_key", sa.String(length=64), nullable=False),
        sa.Column("key_prefix", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("source_kind", source_kind_enum, nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=True),
        sa.Column("daily_usage", sa.Integer(), server_default="0", nullable=False),
        sa.Column("usage_reset_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_accounts_account_key"), "accounts", ["account_key"], unique=True
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_name", sa.String(length=100), nullable=False),
        sa.Column("owner_account_key", sa.String(length=64), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("provider_token", sa.Text(), nullable=True),
        sa.Column("lifecycle_state", sa.String(length=50), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["owner_account_key"], ["accounts.account_key"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone"),
    )
    op.create_index(
        op.f("ix_sessions_session_name"), "sessions", ["session_name"], unique=True
    )
    op.create_index(
        op.f("ix_sessions_owner_account_key"), "sessions", ["owner_account_key"]
    )

    op.create_table(
        "session_usage",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_name", sa.String(length=100), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("count", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "session_name", "usage_date", name="uq_session_usage_day"
        ),
    )


def downgrade() -> None:
    """Drop gateway tables."""
    op.drop_table("session_usage")
    op.drop_index(op.f("ix_sessions_owner_account_key"), table_name="sessions")
    op.drop_index(op.f("ix_sessions_session_name"), table_name="sessions")
    op.drop_table("sessions")
    op.drop_index(op.f("ix_accounts_account_key"), table_name="accounts")
    op.drop_table("accounts")
    source_kind_enum.drop(op.get_bind(), checkfirst=True)
