"""
OpenToilet Backend — Health Check Route
=========================================

What:  Liveness endpoint for load balancers, Docker health checks and the
       frontend's "is the backend up" probe.
How:   Returns a fixed body; the process answering is the check.
       Mounted at /health and at /api/health (the path the client uses).
"""

import logging

from fastapi import APIRouter

from opentoilet.schemas.restroom import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="OK", message="Backend is running")
