"""
Database connection management for gitwarden.

Engine and session factory are created lazily from the configured
database URL and shared for the life of the process.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from gitwarden.config import GitwardenConfig, get_config

logger = logging.getLogger(__name__)

# Global engine and session factory (lazy-loaded)
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_db_path(config: Optional[GitwardenConfig] = None) -> Optional[Path]:
    """
    Get the SQLite database file path.

    Args:
        config: gitwarden configuration (uses global if not provided)

    Returns:
        Path to the SQLite file, or None for non-file databases
    """
    if config is None:
        config = get_config()

    db_url = config.db_url
    if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
        return Path(db_url[len("sqlite:///"):])
    return None


def init_engine(config: Optional[GitwardenConfig] = None) -> Engine:
    """
    Initialize the SQLAlchemy engine.

    Args:
        config: gitwarden configuration (uses global if not provided)

    Returns:
        Configured SQLAlchemy engine
    """
    global _engine

    if _engine is not None:
        return _engine

    if config is None:
        config = get_config()

    connect_args = {}
    if config.db_url.startswith("sqlite"):
        db_path = get_db_path(config)
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        connect_args = {
            "check_same_thread": False,
            "timeout": 30,
        }

    _engine = create_engine(
        config.db_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=False,
    )

    if config.db_url.startswith("sqlite"):
        @event.listens_for(_engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """Enable SQLite foreign key support."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.debug(f"Database engine initialized: {config.db_url}")
    return _engine


def get_session_maker(config: Optional[GitwardenConfig] = None) -> sessionmaker:
    """
    Get or create the session maker.

    Args:
        config: gitwarden configuration (uses global if not provided)

    Returns:
        Configured session maker
    """
    global _SessionLocal

    if _SessionLocal is not None:
        return _SessionLocal

    engine = init_engine(config)
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )

    return _SessionLocal


def create_tables(config: Optional[GitwardenConfig] = None) -> None:
    """
    Create all database tables that do not exist yet.

    Args:
        config: gitwarden configuration (uses global if not provided)
    """
    from gitwarden.database.models import Base

    engine = init_engine(config)
    Base.metadata.create_all(bind=engine)
    logger.debug("Database tables ensured")


def reset_engine() -> None:
    """Dispose of the shared engine so the next call rebuilds it."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
