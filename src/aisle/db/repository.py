"""SQLite engine and transaction scope shared by the db helpers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from aisle.config import get_settings
from aisle.db.models import Base

logger = logging.getLogger(__name__)

# Seconds a writer waits for another transaction's lock before failing.
SQLITE_BUSY_TIMEOUT = 15.0

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _install_sqlite_hooks(engine: Engine) -> None:
    """Start every transaction with BEGIN IMMEDIATE and enforce foreign keys.

    Allocating a sort key reads a store's items and then writes one row; taking
    the write lock up front keeps two such placements from reading the same
    neighbours.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(db_path: Path) -> Engine:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
    )
    _install_sqlite_hooks(engine)
    Base.metadata.create_all(engine)
    logger.debug("Opened grocery database at %s", db_path)
    return engine


def get_engine(database_path: Path | None = None) -> Engine:
    """Return the process-wide engine, creating tables on first use."""
    global _engine, _session_factory

    if _engine is None:
        _engine = _build_engine(database_path or get_settings().database_path)
        _session_factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def get_session() -> Session:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None  # for mypy
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """One transaction: commit on success, roll back and re-raise on any error."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_repository_state() -> None:
    """Dispose the cached engine so the next call rereads settings (tests)."""

    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "SQLITE_BUSY_TIMEOUT",
    "get_engine",
    "get_session",
    "reset_repository_state",
    "session_scope",
]
