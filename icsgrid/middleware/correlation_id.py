"""Per-request correlation ids carried through logs and responses.

The correlation ID is read from the inbound request (or generated), stored in
a context variable so log records and outbound calendar fetches can carry it,
and echoed back in the ``X-Request-ID`` response header.
"""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Bind a request id for the duration of ``handler``.

    The id comes from ``X-Request-ID``, then ``X-Correlation-ID``, and is a
    fresh UUID4 when neither header is present. It is also stored on the
    request as ``request["correlation_id"]``.
    """
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )

    token = request_id_var.set(correlation_id)
    request["correlation_id"] = correlation_id
    try:
        response = await handler(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


def get_request_id() -> str:
    """Request id bound to the current task, or ``"no-request-id"``."""
    return request_id_var.get() or "no-request-id"
