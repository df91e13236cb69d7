"""Integration tests for database migrations and persistence."""

from __future__ import annotations

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from models import Base
from services import database


def test_migrations_create_every_table(tmp_path) -> None:
    """Alembic upgrade on a file database creates the full schema."""
    url = f"sqlite:///{tmp_path / 'nested' / 'assistant.db'}"
    engine = database.create_db_engine(url)
    try:
        database.init_db(engine)
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert set(Base.metadata.tables) <= tables
        assert "alembic_version" in tables
        columns = {column["name"] for column in inspector.get_columns("detail_source_links")}
        assert {"trace_id", "source_type", "external_id", "metadata"} <= columns
        assert database.check_connection(engine) is True
    finally:
        engine.dispose()


def test_migrations_are_repeatable(tmp_path) -> None:
    """Running the upgrade twice is a no-op the second time."""
    url = f"sqlite:///{tmp_path / 'assistant.db'}"
    engine = database.create_db_engine(url)
    try:
        database.init_db(engine)
        database.init_db(engine)
        assert inspect(engine).has_table("execution_runs")
    finally:
        engine.dispose()


def test_in_memory_database_uses_metadata(tmp_path) -> None:
    """In-memory databases get the schema without Alembic."""
    engine = database.create_db_engine("sqlite:///:memory:")
    try:
        database.init_db(engine)
        tables = set(inspect(engine).get_table_names())
        assert "events" in tables
        assert "alembic_version" not in tables
    finally:
        engine.dispose()


def test_direct_upgrade_uses_configured_database(monkeypatch, tmp_path) -> None:
    """Running Alembic from the ini file targets the database from settings."""
    db_path = tmp_path / "direct.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

    command.upgrade(Config(str(database._ALEMBIC_INI)), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        assert inspect(engine).has_table("execution_runs")
    finally:
        engine.dispose()
