"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Modules that import get_session directly and must see the test session
_GET_SESSION_IMPORTERS = (
    "runlog.db.session",
    "runlog.api.sessions",
    "runlog.api.analytics",
    "runlog.api.strava",
    "runlog.cli",
)


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints in SQLite connections."""
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
def user_id() -> str:
    """Stable user id for tests."""
    return "user-1"


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """
    Provides a transactional in-memory SQLite DB session for tests.

    This fixture:
    - Creates an isolated in-memory SQLite database per test
    - Patches the engine getters to return it
    - Patches get_session() to yield the test session
    - Rolls the outer transaction back at teardown

    Usage:
        def test_something(db_session, user_id):
            create_planned_session(db_session, user_id, PlannedSessionCreate(...))
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    def mock_get_engine():
        return engine

    monkeypatch.setattr("runlog.db.session._get_engine", mock_get_engine)
    monkeypatch.setattr("runlog.db.session.get_engine", mock_get_engine)

    from runlog.db.models import Base

    Base.metadata.create_all(engine)

    connection = engine.connect()
    transaction = connection.begin()

    test_session_local = sessionmaker(bind=connection, autocommit=False, autoflush=False)
    session = test_session_local()

    @contextmanager
    def mock_get_session():
        yield session
        session.flush()

    # Patch where it is imported, not only where it is defined
    for module in _GET_SESSION_IMPORTERS:
        monkeypatch.setattr(f"{module}.get_session", mock_get_session)

    try:
        yield session
    finally:
        session.rollback()
        if transaction.is_active:
            transaction.rollback()
        session.close()
        connection.close()
        engine.dispose()


@pytest.fixture
def client(db_session, user_id):
    """FastAPI TestClient authenticated as user_id, backed by db_session."""
    from fastapi.testclient import TestClient

    from runlog.api.dependencies.auth import get_current_user_id
    from runlog.main import app

    app.dependency_overrides[get_current_user_id] = lambda: user_id
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
