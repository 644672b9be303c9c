"""
OpenToilet Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan runs the startup barrier before traffic is accepted.
Who:   uvicorn (uvicorn opentoilet.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  RateLimit(writes) → RequestID → Logging    │
    │               → GZip → CORS                              │
    │                                                          │
    │  Routes:      /api/restrooms…      /health, /api/health  │
    │                                                          │
    │  Errors:      Validation/Conflict→400  NotFound→404      │
    │               Internal→500  anything else→500            │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → wait for database → Alembic upgrade head → serve
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from opentoilet import __version__
from opentoilet.config import settings
from opentoilet.database import dispose_engine, run_migrations, wait_for_database
from opentoilet.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    OpenToiletError,
    ValidationError,
)
from opentoilet.middleware.logging import RequestLoggingMiddleware
from opentoilet.middleware.rate_limit import RateLimitMiddleware
from opentoilet.middleware.request_id import RequestIDMiddleware, request_id_var
from opentoilet.routes import health, restrooms

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure root logging once: stdout, level from settings.log_level."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup barrier and shutdown cleanup.

    The schema migration must finish before the first request reaches the
    Location Resolver, so it runs here rather than in the background. A
    database that never becomes reachable aborts startup.
    """
    setup_logging()
    logger.info("OpenToilet Backend %s starting up...", __version__)

    await wait_for_database()

    if settings.run_migrations_on_startup:
        await run_migrations()
    else:
        logger.info("Skipping migrations (RUN_MIGRATIONS_ON_STARTUP=false)")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("OpenToilet Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to `{"error": message}` responses.

        ValidationError          → 400
        ConflictError            → 400
        RequestValidationError   → 400 "Invalid request" (malformed body/path)
        NotFoundError            → 404
        InternalError            → 500, store message passed through
        OpenToiletError (base)   → its status_code
        Exception (fallback)     → 500 "Internal server error"
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(400, exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.warning("[%s] Conflict: %s | %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning("[%s] Malformed request: %s", request_id_var.get(""), exc.errors())
        return error_response(400, INVALID_REQUEST_MESSAGE)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, exc.message)

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        logger.error(
            "[%s] Store error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return error_response(500, exc.message)

    @app.exception_handler(OpenToiletError)
    async def handle_app_error(request: Request, exc: OpenToiletError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True
        )
        return error_response(500, "Internal server error")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers."""
    app = FastAPI(
        title="OpenToilet API",
        description=(
            "Crowdsourced restroom map: restrooms grouped by location, shared door "
            "codes, and like/dislike feedback on whether the codes still work."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Executes in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(restrooms.router)
    app.include_router(health.router)
    app.include_router(health.router, prefix="/api")

    return app


app = create_app()
