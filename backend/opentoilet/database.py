"""
OpenToilet Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, FastAPI session dependency,
       and the startup barrier (wait for the database, apply migrations).
How:   One async engine per process; each request gets its own session that
       commits on success and rolls back on error.
Who:   Routes receive sessions via Depends(); main.py runs the startup steps.
When:  Engine is created at module import; sessions are created per-request.

Connection notes:
    SQLite:     every new DBAPI connection runs PRAGMA foreign_keys=ON so the
                Location → Restroom → AccessCode cascades hold.
    PostgreSQL: pooled (pool_size / max_overflow / pre_ping from settings).
"""

import logging
from pathlib import Path
from typing import AsyncGenerator, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from opentoilet.config import settings

logger = logging.getLogger(__name__)

# backend/alembic — versioned schema history
MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "alembic"


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine configured for the given URL.

    SQLite gets the foreign-key pragma on every connection and no pool
    sizing (aiosqlite does not accept it for in-memory databases).
    """
    if database_url.startswith("sqlite"):
        new_engine = create_async_engine(
            database_url,
            echo=settings.log_level == "DEBUG",
        )

        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return new_engine

    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=settings.log_level == "DEBUG",
    )


engine = build_engine(settings.database_url)

# expire_on_commit=False: response models read attributes after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns normally, rolls back on any exception,
    and always closes the session.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Startup Barrier ───────────────────────────────────────────────────────
async def wait_for_database(target: Optional[AsyncEngine] = None) -> None:
    """
    Block until the database accepts connections.

    Retries with exponential backoff (settings.db_connect_attempts tries),
    then lets the last OperationalError propagate so startup fails loudly.
    """
    target = target or engine

    @retry(
        retry=retry_if_exception_type((OperationalError, OSError)),
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential(multiplier=0.5, max=settings.db_connect_max_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _ping() -> None:
        async with target.connect() as conn:
            await conn.execute(text("SELECT 1"))

    await _ping()
    logger.info("Database reachable: %s", target.url.render_as_string(hide_password=True))


def _alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    return cfg


def _upgrade_to_head(connection) -> None:
    cfg = _alembic_config()
    # env.py picks the live connection up instead of opening its own engine
    cfg.attributes["connection"] = connection
    command.upgrade(cfg, "head")


async def run_migrations(target: Optional[AsyncEngine] = None) -> None:
    """
    Apply all pending Alembic migrations (alembic_version records progress).

    Runs single-threaded before the app serves requests. On SQLite the
    foreign-key pragma is switched off for the duration: the restroom table
    rebuild must not cascade-delete access codes, and SQLite only honors the
    pragma outside a transaction.
    """
    target = target or engine
    is_sqlite = target.dialect.name == "sqlite"

    async with target.connect() as conn:
        if is_sqlite:
            await conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        try:
            await conn.run_sync(_upgrade_to_head)
            await conn.commit()
        finally:
            if is_sqlite:
                await conn.rollback()
                await conn.exec_driver_sql("PRAGMA foreign_keys=ON")
                await conn.commit()

    logger.info("Database schema is at head revision")


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close all pooled connections (application shutdown)."""
    await engine.dispose()
