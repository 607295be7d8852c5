"""
db/session.py

Engine and session wiring for the registry store.

The API resolves its database URL from the environment on first use; tests
and command-line tools can build a factory over any engine with
build_session_factory().
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import normalize_postgres_url, resolve_database_url

logger = logging.getLogger(__name__)

APPLICATION_NAME = "tag-registry"


def _get_bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _connect_args() -> dict[str, str]:
    # Bulk import workers hold a connection for a whole job; the timeout
    # applies per statement, not per job.
    statement_timeout_ms = _get_int_env("DB_STATEMENT_TIMEOUT_MS", 30000)
    args = {"application_name": os.getenv("DB_APPLICATION_NAME", APPLICATION_NAME)}
    if statement_timeout_ms > 0:
        args["options"] = f"-c statement_timeout={statement_timeout_ms}"
    return args


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Build the PostgreSQL engine. Pool sizing comes from DB_POOL_SIZE,
    DB_MAX_OVERFLOW and DB_POOL_RECYCLE.
    """

    url = normalize_postgres_url(database_url) if database_url else resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    engine = create_engine(
        url,
        echo=_get_bool_env("SQL_ECHO", default=False),
        pool_pre_ping=True,
        pool_recycle=_get_int_env("DB_POOL_RECYCLE", 1800),
        pool_size=_get_int_env("DB_POOL_SIZE", 5),
        max_overflow=_get_int_env("DB_MAX_OVERFLOW", 10),
        connect_args=_connect_args(),
    )
    logger.info("Database engine created host=%s db=%s", engine.url.host, engine.url.database)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Session factory settings shared by the app and by callers that bring
    their own engine (migrations tooling, tests).

    expire_on_commit is off so entities and jobs returned from a committed
    unit of work stay readable after the session closes.
    """

    return sessionmaker(
        bind=engine,
        class_=Session,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    return _get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    Transactional scope for scripts: commit on success, roll back and
    re-raise on error.
    """

    session = factory() if factory is not None else SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
