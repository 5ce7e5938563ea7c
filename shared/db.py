"""
Shared database connection and session management.

Sync SQLAlchemy engine and session setup reused by the API and worker
services. The schema is Alembic-managed; tables are reflected rather than
declared as ORM models.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import MetaData, Table, create_engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config import get_config


# Global engine and session factory (initialized on first use).
_engine = None
_SessionLocal = None
_analyses_table = None


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        config = get_config()
        if not config.database_url:
            raise ValueError(
                "DATABASE_URL environment variable is required. "
                "Set it to a PostgreSQL connection string."
            )
        _engine = create_engine(
            config.database_url,
            pool_pre_ping=True,
            echo=False,
        )
    return _engine


def get_session_factory():
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _SessionLocal


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on clean exit, rolls back and re-raises on error.

    Usage:
        with get_db_session() as session:
            ...
    """
    factory = get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_analyses_table() -> Table:
    """Get the analyses table (reflected once per process)."""
    global _analyses_table
    if _analyses_table is None:
        metadata = MetaData()
        _analyses_table = Table("analyses", metadata, autoload_with=get_engine())
    return _analyses_table
