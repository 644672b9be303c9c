"""
OpenToilet Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file migrated to head by the same
       run_migrations() the app runs at startup, so the schema under test is
       the Alembic one, not Base.metadata.create_all().

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:        Async engine over a temporary SQLite file (migrated)
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── store:            RestroomStore over one session
    ├── count_locations:  async helper counting rows in `locations`
    ├── legacy_engine:    Async engine over an unmigrated flat-schema file
    └── test_client:      HTTPX AsyncClient against a fresh app instance
"""

import os
import tempfile

# Override settings for testing BEFORE any opentoilet imports
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="opentoilet_test_"), "app.db")
)
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opentoilet.database import build_engine, get_db_session, run_migrations
from opentoilet.models import Location
from opentoilet.services.restroom_store import RestroomStore


# Flat schema exactly as the first release of the service created it
LEGACY_SCHEMA = (
    """
    CREATE TABLE restrooms (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('male', 'female', 'neutral')),
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE access_codes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        restroom_id INTEGER NOT NULL,
        code TEXT NOT NULL,
        likes INTEGER DEFAULT 0,
        dislikes INTEGER DEFAULT 0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (restroom_id) REFERENCES restrooms (id) ON DELETE CASCADE,
        UNIQUE(restroom_id, code)
    )
    """,
)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A migrated SQLite database that lives for one test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'opentoilet.db'}")
    await run_migrations(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def store(session_factory):
    """
    A RestroomStore over a single session.

    Usage:
        async def test_x(store):
            await store.create_location("Cafe", 40.0, -73.0)
    """
    async with session_factory() as session:
        yield RestroomStore(session)


@pytest.fixture
def count_locations():
    """
    Number of Location rows visible to a session.

    Usage:
        assert await count_locations(store.session) == 1
    """
    async def _count(session) -> int:
        result = await session.execute(select(func.count(Location.id)))
        return result.scalar()

    return _count


@pytest_asyncio.fixture
async def legacy_engine(tmp_path):
    """
    An engine over a database written by the flat-schema release.

    No alembic_version table exists yet; tests seed rows, then migrate.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'legacy.db'}")
    async with engine.begin() as conn:
        for statement in LEGACY_SCHEMA:
            await conn.exec_driver_sql(statement)
    yield engine
    await engine.dispose()


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient talking to a fresh app (fresh rate-limit state).
    How:     get_db_session is overridden to open sessions on the test
             database; ASGITransport skips the lifespan, so no startup
             migration runs against the default URL.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from opentoilet.main import create_app

    app = create_app()

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def restroom_payload():
    """A valid POST /api/restrooms body."""
    return {
        "name": "Blue Bottle Coffee",
        "latitude": 40.7128,
        "longitude": -74.0060,
        "type": "neutral",
    }
