"""Database engine, session factory, and migration helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from alembic import command
from alembic.config import Config

from models import Base

logger = logging.getLogger(__name__)

_ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def create_db_engine(url: str) -> Engine:
    """Create an engine for the configured URL.

    SQLite file databases get their parent directory created; in-memory
    databases share one connection so every session sees the same schema.
    """
    if url.startswith("sqlite"):
        if url in {"sqlite://", "sqlite:///:memory:"}:
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            db_path = Path(url.split("sqlite:///", 1)[-1])
            db_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(url)
        return engine
    return create_engine(url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def run_migrations(url: str) -> None:
    """Upgrade the database schema to the latest Alembic revision."""
    alembic_cfg = Config(str(_ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(_ALEMBIC_INI.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(alembic_cfg, "head")


def init_db(engine: Engine) -> None:
    """Initialize database tables for the engine.

    File-backed databases are migrated with Alembic; in-memory databases get
    the ORM metadata created directly since each Alembic run would open a
    fresh, empty connection.
    """
    url = engine.url.render_as_string(hide_password=False)
    if engine.url.get_backend_name() == "sqlite" and engine.url.database in (None, "", ":memory:"):
        Base.metadata.create_all(engine)
        logger.info("In-memory database schema created")
        return
    run_migrations(url)
    logger.info("Database migrations applied")


def check_connection(engine: Engine) -> bool:
    """Check if database connection is working."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
