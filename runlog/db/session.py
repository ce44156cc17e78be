from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from runlog.config.settings import settings
from runlog.core.errors import RunlogError

# Created on first use so importing the package never opens a connection
_engine = None
_SessionLocal = None


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        url = settings.database_url
        logger.info("[DB] Initializing database engine")

        connect_args = {}
        if _is_sqlite(url):
            connect_args = {"check_same_thread": False}
            logger.warning("[DB] Using SQLite database (local development only)")

        _engine = create_engine(
            url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("[DB] Database engine initialized")
    return _engine


def get_engine():
    """Get or create the database engine (public API)."""
    return _get_engine()


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.debug("[DB] Session factory initialized")
    return _SessionLocal


def __getattr__(name: str):
    """Lazy module attributes for `engine` and `SessionLocal`."""
    if name == "engine":
        return _get_engine()
    if name == "SessionLocal":
        return _get_session_local()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def _handle_session_commit(session: Session) -> None:
    """Commit the unit of work.

    Services flush eagerly, so pending changes may already sit in the open
    transaction even when the session reports nothing dirty.
    """
    logger.debug(f"[DB] Committing: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}")
    session.commit()


def get_db() -> Generator[Session, None, None]:
    """Get database session for FastAPI dependencies.

    Plain generator usable with Depends(). For non-FastAPI code that needs
    a transactional scope, use get_session() instead.
    """
    session = _get_session_local()()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transactional session scope.

    - HTTPException and domain errors: rolled back and re-raised without logging
    - Other exceptions: logged as database errors, rolled back and re-raised
    """
    session = _get_session_local()()
    try:
        yield session
        _handle_session_commit(session)
    except (HTTPException, RunlogError):
        session.rollback()
        raise
    except Exception as e:
        logger.error(f"[DB] Database session error, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()
