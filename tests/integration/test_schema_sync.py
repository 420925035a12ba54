"""Verify that Alembic migrations produce a schema matching ORM metadata.

This test catches the class of bugs where a new ORM model is added but
the corresponding Alembic migration is missing or incomplete.

Requires a running PostgreSQL instance (docker compose up).
"""

from collections.abc import Generator

import pytest
from sqlalchemy import Engine, create_engine, inspect, text

from wpp_gateway.config import get_settings
from wpp_gateway.storage.orm import Base

pytestmark = pytest.mark.requires_db


@pytest.fixture()
def db_engine() -> Generator[Engine]:
    """Create a sync engine for schema inspection."""
    engine = create_engine(get_settings().database_url)
    yield engine
    engine.dispose()


class TestSchemaSync:
    """Ensure ORM metadata and actual DB schema are in sync."""

    def test_all_orm_tables_exist_in_db(self, db_engine: Engine) -> None:
        """Every table in Base.metadata must exist in PostgreSQL."""
        inspector = inspect(db_engine)
        db_tables = set(inspector.get_table_names())
        orm_tables = set(Base.metadata.tables.keys())

        missing = orm_tables - db_tables
        assert not missing, f"ORM tables missing from DB (migration needed?): {missing}"

    def test_all_orm_columns_exist_in_db(self, db_engine: Engine) -> None:
        """Every column defined in ORM must exist in the DB table."""
        inspector = inspect(db_engine)
        db_tables = set(inspector.get_table_names())

        for table_name, table in Base.metadata.tables.items():
            if table_name not in db_tables:
                continue  # caught by test_all_orm_tables_exist_in_db

            db_columns = {col["name"] for col in inspector.get_columns(table_name)}
            orm_columns = {col.name for col in table.columns}
            missing = orm_columns - db_columns
            assert not missing, (
                f"Table '{table_name}': columns missing from DB: {missing}"
            )

    def test_unique_phone_constraint_present(self, db_engine: Engine) -> None:
        """One phone, one session row: enforced by the database, not just code."""
        inspector = inspect(db_engine)
        unique_columns = [
            tuple(c["column_names"])
            for c in inspector.get_unique_constraints("sessions")
        ]
        unique_indexes = [
            tuple(i["column_names"])
            for i in inspector.get_indexes("sessions")
            if i["unique"]
        ]
        assert ("phone",) in unique_columns + unique_indexes

    def test_alembic_head_matches_current(self, db_engine: Engine) -> None:
        """Alembic current revision must be at head (no unapplied migrations)."""
        with db_engine.connect() as conn:
            result = conn.execute(text("SELECT version_num FROM alembic_version"))
            current = result.scalar_one_or_none()

        assert current is not None, "No alembic_version found, migrations not applied"

        from alembic.config import Config
        from alembic.script import ScriptDirectory

        alembic_cfg = Config("alembic.ini")
        script = ScriptDirectory.from_config(alembic_cfg)
        head = script.get_current_head()

        assert current == head, (
            f"DB at revision {current}, but head is {head}. Run: alembic upgrade head"
        )
