"""
OpenToilet Backend — Write Rate Limiting Middleware
=====================================================

What:  Per-IP sliding-window limit on write requests (POST, PUT, PATCH,
       DELETE). Reads are never limited: the map reloads the restroom list
       freely, while anonymous submissions and votes are what gets abused.

Algorithm: Sliding Window Log
    1. Each IP keeps the timestamps of its recent writes
    2. On each write, drop timestamps older than the window
    3. If the remaining count >= limit → 429 with Retry-After
    4. Otherwise record the timestamp and continue

State is in-process memory: correct for a single uvicorn worker only.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from opentoilet.config import settings
from opentoilet.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

LIMITED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter for write requests.

    Args:
        max_requests: Writes allowed per IP per window (default from settings)
        window_seconds: Window length (default from settings)
    """

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method not in LIMITED_METHODS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.max_requests:
            retry_after = int(recent[0] + self.window_seconds - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for IP %s: %d writes in %ds window",
                client_ip,
                len(recent),
                self.window_seconds,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.message},
                headers={"Retry-After": str(exc.retry_after)},
            )

        recent.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Forget IPs with no writes inside the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
