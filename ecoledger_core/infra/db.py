"""Database infrastructure for EcoLedger Core."""

from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ecoledger_core.config import get_settings


def engine_options(database_url: str, isolation_level: Optional[str]) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` on the given database.

    Server databases run at ``isolation_level`` so that a read taken after a
    row lock (the redemption balance re-check, the post-claim refresh) sees
    rows committed while the lock was awaited. SQLite has no such level and
    keeps its driver default.
    """
    options: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "echo": False,
    }
    if isolation_level and make_url(database_url).get_backend_name() != "sqlite":
        options["isolation_level"] = isolation_level
    return options


def get_sync_engine() -> Engine:
    """Get synchronous database engine."""
    settings = get_settings()
    return create_engine(
        settings.database_url,
        **engine_options(settings.database_url, settings.database_isolation_level),
    )


# Session factory
_sync_engine = None
_sync_session_factory = None


def get_sync_session_factory() -> sessionmaker[Session]:
    """Get synchronous session factory (singleton)."""
    global _sync_engine, _sync_session_factory
    if _sync_session_factory is None:
        _sync_engine = get_sync_engine()
        _sync_session_factory = sessionmaker(
            bind=_sync_engine,
            autocommit=False,
            autoflush=False,
        )
    return _sync_session_factory


def dispose_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _sync_engine, _sync_session_factory
    if _sync_engine is not None:
        _sync_engine.dispose()
    _sync_engine = None
    _sync_session_factory = None


@contextmanager
def session_context() -> Generator[Session, None, None]:
    """Context manager for a database session (scripts and maintenance)."""
    session = get_sync_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
