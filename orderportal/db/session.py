"""
Database session management with SQLAlchemy.
"""
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
from contextlib import contextmanager

from orderportal.core.config import settings
from orderportal.core.logging import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    # SQLite (tests, local runs) rejects the pool sizing arguments
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

REQUIRED_TABLES = ("users", "orders", "status_history", "email_settings", "alert_recipients", "system_logs")


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Verify the schema on startup.

    Schema is managed by Alembic migrations (`alembic upgrade head`), not
    create_all(). Only DEBUG runs auto-create missing tables.
    """
    from orderportal.db import models  # noqa

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    existing_tables = inspect(engine).get_table_names()
    missing = [t for t in REQUIRED_TABLES if t not in existing_tables]
    if not missing:
        logger.info(f"Database schema verified: {len(existing_tables)} tables found")
        return

    if settings.DEBUG:
        logger.warning(f"Missing tables {missing}; DEBUG=true so creating them (NOT for production!)")
        Base.metadata.create_all(bind=engine)
    else:
        logger.error(f"Missing required tables: {missing}. Run `alembic upgrade head` before starting.")
