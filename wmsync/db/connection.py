"""Database connection management for the local transaction store.

Usage:
    from wmsync.db.connection import create_db_engine, create_session_factory, init_db

    engine = create_db_engine("sqlite:///./wmsync.db")
    init_db(engine)
    SessionLocal = create_session_factory(engine)
    with session_scope(SessionLocal) as db:
        ...
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wmsync.db.models import Base

DEFAULT_DATABASE_URL = "sqlite:///./wmsync.db"


def get_database_url(configured: str | None = None) -> str:
    """Resolve the database URL.

    Precedence:
    1. WMSYNC_DATABASE_URL
    2. The configured URL
    3. sqlite:///./wmsync.db
    """
    env_url = os.environ.get("WMSYNC_DATABASE_URL", "").strip()
    if env_url:
        return env_url
    return configured or DEFAULT_DATABASE_URL


def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Configure SQLite pragmas for concurrent readers and durable commits."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.close()


def create_db_engine(url: str | None = None, echo: bool = False) -> Engine:
    """Create an engine, applying SQLite pragmas when applicable."""
    url = get_database_url(url)
    is_sqlite = url.startswith("sqlite")
    kwargs: dict[str, Any] = {}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise each worker thread gets its own empty db.
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Context manager committing on success and rolling back on error.

    Usage:
        with session_scope(SessionLocal) as db:
            db.add(row)
    """
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
