"""
OpenToilet Backend — Middleware Tests
=======================================

What:  Tests for write rate limiting, request IDs and access-log levels.
How:   A minimal FastAPI app wired with the middleware under test.
"""

import logging

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from opentoilet.middleware.logging import level_for_status
from opentoilet.middleware.rate_limit import RateLimitMiddleware
from opentoilet.middleware.request_id import RequestIDMiddleware, request_id_var


@pytest_asyncio.fixture
async def limited_client():
    app = FastAPI()

    @app.get("/items")
    async def read_items():
        return {"request_id": request_id_var.get("")}

    @app.post("/items")
    async def write_item():
        return {"ok": True}

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_writes_over_limit_rejected(self, limited_client):
        assert (await limited_client.post("/items")).status_code == 200
        assert (await limited_client.post("/items")).status_code == 200

        response = await limited_client.post("/items")

        assert response.status_code == 429
        assert response.json()["error"].startswith("Too many requests.")
        assert 1 <= int(response.headers["Retry-After"]) <= 61

    @pytest.mark.asyncio
    async def test_reads_never_limited(self, limited_client):
        for _ in range(2):
            await limited_client.post("/items")

        for _ in range(5):
            assert (await limited_client.get("/items")).status_code == 200


class TestRequestId:

    @pytest.mark.asyncio
    async def test_id_visible_to_handler(self, limited_client):
        response = await limited_client.get("/items")

        assert response.json()["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_id_reset_after_request(self, limited_client):
        await limited_client.get("/items")

        assert request_id_var.get("") == ""


class TestAccessLogLevel:

    @pytest.mark.parametrize(
        "status, level",
        [
            (200, logging.INFO),
            (304, logging.INFO),
            (400, logging.WARNING),
            (404, logging.WARNING),
            (429, logging.WARNING),
            (500, logging.ERROR),
        ],
    )
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level
