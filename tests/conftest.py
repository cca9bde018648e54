"""Pytest configuration and fixtures for EcoLedger Core tests.

This module provides fixtures for:
- Database: SQLite in-memory engine shared by services and the API
- HTTP client: AsyncClient for FastAPI testing
- Verification: a scripted oracle standing in for the external service
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from ecoledger_core.config import Settings
from ecoledger_core.domain.models import Base
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.verification import VerificationGate
from tests.factories import ScriptedOracle


# -----------------------------------------------------------------------------
# Test Settings
# -----------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        database_url="sqlite+pysqlite:///:memory:",
        report_reward_points=10,
        collect_reward_mode="quantity",
        collect_reward_min=10,
        collect_reward_max=1009,
        collect_reward_base=10,
        collect_reward_per_unit=5,
        oracle_url=None,
        verification_timeout_seconds=1.0,
        verification_confidence_threshold=0.5,
        log_json=False,
    )


# -----------------------------------------------------------------------------
# Synchronous Database Fixtures
# -----------------------------------------------------------------------------


def create_schema(engine) -> None:
    """Create all tables on a SQLite engine."""
    # SQLite only autoincrements INTEGER PRIMARY KEY columns
    from sqlalchemy.dialects import sqlite
    original_visit = sqlite.dialect.type_compiler_cls.visit_BIGINT
    sqlite.dialect.type_compiler_cls.visit_BIGINT = lambda self, type_, **kw: "INTEGER"
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        sqlite.dialect.type_compiler_cls.visit_BIGINT = original_visit



@pytest.fixture
def sync_engine():
    """Create a synchronous SQLite in-memory engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign keys and let SQLAlchemy own BEGIN so SAVEPOINTs work
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    create_schema(engine)

    yield engine

    # Cleanup
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sync_session_factory(sync_engine) -> sessionmaker[Session]:
    """Create a synchronous session factory."""
    return sessionmaker(
        bind=sync_engine,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
def db_session(sync_session_factory) -> Generator[Session, None, None]:
    """Create a synchronous database session for testing."""
    session = sync_session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture
def file_session_factory(tmp_path) -> Generator[sessionmaker[Session], None, None]:
    """Session factory on a file-backed SQLite database.

    Every session gets its own connection, so two sessions can interleave
    their reads and commits. The driver keeps its default transaction
    handling: a SELECT outside a write sees the latest committed rows, as
    on a READ COMMITTED server.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'ecoledger.db'}")

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    create_schema(engine)

    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)

    engine.dispose()


# -----------------------------------------------------------------------------
# Verification Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def scripted_oracle() -> ScriptedOracle:
    """Oracle that approves with confidence 0.9 unless reconfigured."""
    return ScriptedOracle()


@pytest.fixture
def verification_gate(scripted_oracle) -> VerificationGate:
    """Gate in front of the scripted oracle."""
    return VerificationGate(scripted_oracle, timeout=1.0, threshold=0.5)


# -----------------------------------------------------------------------------
# FastAPI Test Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def test_app(test_settings, db_session, verification_gate) -> FastAPI:
    """Create a FastAPI test application with test settings and DB override."""
    from ecoledger_core.api.deps import get_db
    from ecoledger_core.main import app

    # Override settings and the objects the lifespan would build
    app.state.settings = test_settings
    app.state.reward_policy = CollectRewardPolicy.from_settings(test_settings)
    app.state.verification_gate = verification_gate

    # Requests share the test session so tests see their writes directly
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up overrides
    app.dependency_overrides.clear()
    app.state.settings = None
    app.state.reward_policy = None
    app.state.verification_gate = None


@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


# -----------------------------------------------------------------------------
# Cleanup Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    from ecoledger_core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
