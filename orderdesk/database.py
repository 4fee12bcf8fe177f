"""Database connection: one shared engine and transactional sessions."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .logsetup import get_logger
from .models import Base

DB_HOST = "127.0.0.1"
DB_PORT = 3306
_DRIVERS = {"mysql": "mysql+pymysql"}

_lock = threading.Lock()
_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def build_url(db_type: str, name: str, user: str, password: str) -> str:
    """Return the connection URL for a database on the local server."""
    try:
        driver = _DRIVERS[db_type]
    except KeyError:
        raise ValueError(f"unsupported database type: {db_type!r}") from None
    url = URL.create(
        driver,
        username=user,
        password=password,
        host=DB_HOST,
        port=DB_PORT,
        database=name,
        query={"charset": "utf8mb4"},
    )
    return url.render_as_string(hide_password=False)


def _engine_options(url: str) -> dict[str, Any]:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:"):
        # An in-memory database lives in one connection; share it.
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {}


def init_db(url: str) -> Engine:
    """Connect to ``url`` once, create missing tables and return the shared engine.

    Later calls return the engine made by the first successful call.
    """
    global _engine, _sessions
    with _lock:
        if _engine is not None:
            return _engine
        log = get_logger()
        engine: Engine | None = None
        try:
            engine = create_engine(url, **_engine_options(url))
            with engine.connect():
                pass
            Base.metadata.create_all(engine)
        except SQLAlchemyError as exc:
            log.error(
                "database connection failed; check the database name, user and "
                "password and that the database exists: %s",
                exc,
            )
            if engine is not None:
                engine.dispose()
            raise
        _engine = engine
        _sessions = sessionmaker(bind=engine, expire_on_commit=False)
        log.debug("database connected")
        return _engine


def get_engine() -> Engine:
    """Return the shared engine; ``init_db`` must have been called."""
    if _engine is None:
        raise RuntimeError("database is not initialised; call init_db first")
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on any error."""
    if _sessions is None:
        raise RuntimeError("database is not initialised; call init_db first")
    session = _sessions()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


def reset_db() -> None:
    """Close the shared engine so the next ``init_db`` connects afresh."""
    global _engine, _sessions
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _sessions = None