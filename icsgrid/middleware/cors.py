"""CORS middleware so browser clients on another origin can call the API."""

from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

ALLOWED_METHODS = "GET, OPTIONS"
ALLOWED_HEADERS = "Content-Type, X-Request-ID, X-Correlation-ID"


def make_cors_middleware(allow_origin: str = "*") -> Any:
    """Build a middleware answering preflight requests and tagging responses.

    Args:
        allow_origin: Value for Access-Control-Allow-Origin
    """

    @web.middleware
    async def cors_middleware(
        request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
    ) -> web.StreamResponse:
        if request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers:
            response: web.StreamResponse = web.Response(status=204)
        else:
            response = await handler(request)

        response.headers["Access-Control-Allow-Origin"] = allow_origin
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        response.headers["Access-Control-Expose-Headers"] = "X-Request-ID"
        return response

    return cors_middleware
