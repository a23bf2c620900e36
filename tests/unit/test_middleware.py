"""Tests for the correlation ID and CORS middlewares."""

import uuid

import pytest
from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase

from icsgrid.middleware import correlation_id_middleware, get_request_id, make_cors_middleware

pytestmark = [pytest.mark.unit]


class TestCorrelationIdMiddleware(AioHTTPTestCase):
    """Test correlation ID middleware functionality."""

    async def get_application(self) -> web.Application:
        app = web.Application(middlewares=[correlation_id_middleware])

        async def handler(request: web.Request) -> web.Response:
            return web.json_response(
                {"correlation_id": request.get("correlation_id", "not-set"), "context_id": get_request_id()}
            )

        app.router.add_get("/test", handler)
        return app

    async def test_correlation_id_from_x_request_id_header(self) -> None:
        resp = await self.client.request("GET", "/test", headers={"X-Request-ID": "req-1"})

        data = await resp.json()
        assert data == {"correlation_id": "req-1", "context_id": "req-1"}
        assert resp.headers["X-Request-ID"] == "req-1"

    async def test_correlation_id_from_x_correlation_id_header(self) -> None:
        resp = await self.client.request("GET", "/test", headers={"X-Correlation-ID": "corr-9"})

        assert (await resp.json())["correlation_id"] == "corr-9"

    async def test_correlation_id_generated_when_absent(self) -> None:
        resp = await self.client.request("GET", "/test")

        generated = resp.headers["X-Request-ID"]
        assert uuid.UUID(generated)
        assert (await resp.json())["context_id"] == generated

    async def test_context_cleared_after_request(self) -> None:
        await self.client.request("GET", "/test", headers={"X-Request-ID": "req-2"})

        assert get_request_id() == "no-request-id"


class TestCorsMiddleware(AioHTTPTestCase):
    """Test CORS headers and preflight handling."""

    async def get_application(self) -> web.Application:
        app = web.Application(middlewares=[make_cors_middleware("https://app.example")])

        async def handler(_request: web.Request) -> web.Response:
            return web.json_response({"ok": True})

        app.router.add_get("/api/ics", handler)
        return app

    async def test_simple_request_gets_allow_origin(self) -> None:
        resp = await self.client.request("GET", "/api/ics")

        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "https://app.example"

    async def test_preflight_answered_without_handler(self) -> None:
        resp = await self.client.request(
            "OPTIONS", "/api/ics", headers={"Origin": "https://app.example", "Access-Control-Request-Method": "GET"}
        )

        assert resp.status == 204
        assert "GET" in resp.headers["Access-Control-Allow-Methods"]
