"""
OpenToilet Backend — Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and exposes a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Async drivers the engine factory knows how to configure
SUPPORTED_DRIVERS = ("sqlite+aiosqlite", "postgresql+asyncpg")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have working defaults for local development against a
    SQLite file. Production deployments normally override DATABASE_URL and
    CORS_ORIGINS.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///./file.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./opentoilet.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases; SQLite ignores these
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Startup wait-for-database (tenacity, exponential backoff)
    db_connect_attempts: int = Field(default=5, ge=1, le=30)
    db_connect_max_wait: int = Field(default=10, ge=1, le=120)

    # Apply pending Alembic migrations before the app accepts traffic
    run_migrations_on_startup: bool = Field(default=True)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """The engine is async-only, so the URL must name an async driver."""
        if not v.startswith(SUPPORTED_DRIVERS):
            raise ValueError(
                f"Unsupported DATABASE_URL '{v}'. Must start with one of: {SUPPORTED_DRIVERS}"
            )
        return v

    # ── Location Resolver ─────────────────────────────────────────────────
    # Two submissions closer than this on BOTH axes share a Location.
    # 0.0001 degrees is roughly 11 meters at the equator.
    location_match_tolerance: float = Field(default=0.0001, gt=0, le=0.01)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list of exact origins
    cors_origins: str = Field(
        default="http://localhost:3000,https://open-toilet.vercel.app"
    )

    # Preview deployments get generated hostnames, matched by pattern
    cors_origin_regex: Optional[str] = Field(
        default=r"^https://open-toilet-.*\.vercel\.app$"
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3001, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # Per-IP sliding window, applied to write requests only
    rate_limit_requests: int = Field(default=120, ge=10, le=10000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # DATABASE_URL and database_url both work
    }


# Singleton instance — imported throughout the application
settings = Settings()
