"""
Database engine, session factory, and metadata shared across the package.

The engine is built on first use so importing models never opens a
connection; tests bind their own engines to ``SessionLocal``.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
import threading
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..core.config import settings

logger = logging.getLogger(__name__)

_ENGINE: Optional[Engine] = None
_ENGINE_LOCK = threading.Lock()

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Pick pool settings for the configured backend."""
    if db_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in db_url or db_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return kwargs
    return dict(_DEFAULT_POOL_KWARGS)


def create_db_engine(db_url: Optional[str] = None) -> Engine:
    """Create an engine for ``db_url`` (defaults to the configured URL)."""
    url = db_url or settings.get_database_url()
    new_engine = create_engine(url, echo=settings.database_echo, **_build_engine_kwargs(url))

    @event.listens_for(new_engine, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    return new_engine


def get_engine() -> Engine:
    """Return the process-wide engine, creating and binding it on first call."""
    global _ENGINE
    if _ENGINE is not None:
        return _ENGINE
    with _ENGINE_LOCK:
        if _ENGINE is None:
            _ENGINE = create_db_engine()
            SessionLocal.configure(bind=_ENGINE)
    return _ENGINE


def bind_engine(engine: Engine) -> None:
    """Bind ``SessionLocal`` to an externally created engine (tests, scripts)."""
    global _ENGINE
    with _ENGINE_LOCK:
        _ENGINE = engine
        SessionLocal.configure(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context-managed session for Celery tasks and scripts."""
    get_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "SessionLocal",
    "bind_engine",
    "create_db_engine",
    "get_db",
    "get_db_session",
    "get_engine",
]
