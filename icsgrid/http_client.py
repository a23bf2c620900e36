"""Shared HTTP client manager for calendar retrieval.

Upstream calendar hosts are reached through pooled ``httpx.AsyncClient``
instances keyed by id; the aiohttp cleanup hook drains the pool on shutdown.
"""

import asyncio
import logging
from typing import Optional

import httpx

from . import __version__

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=5,
)

DEFAULT_TIMEOUT = httpx.Timeout(
    connect=5.0,
    read=15.0,
    write=10.0,
    pool=15.0,
)

DEFAULT_MAX_REDIRECTS = 5

DEFAULT_HEADERS = {
    "User-Agent": f"icsgrid/{__version__} (+calendar proxy)",
    "Accept": "text/calendar, application/calendar, text/plain;q=0.9, */*;q=0.5",
}


def create_client(
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    timeout: Optional[httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create a client configured for bounded calendar retrieval.

    Args:
        max_redirects: Maximum redirects followed per request
        timeout: Per-operation httpx timeouts (defaults to DEFAULT_TIMEOUT)
        transport: Optional transport override (tests use httpx.MockTransport)
    """
    return httpx.AsyncClient(
        limits=DEFAULT_LIMITS,
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True,
        max_redirects=max_redirects,
        verify=True,
        headers=DEFAULT_HEADERS,
        transport=transport,
    )


async def get_shared_client(
    client_id: str = "default",
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> httpx.AsyncClient:
    """Return the pooled client registered under ``client_id``.

    A closed or missing client is replaced. ``max_redirects`` only applies
    when a new client is built.
    """
    async with _client_lock:
        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            client = create_client(max_redirects=max_redirects)
            _shared_clients[client_id] = client
            logger.info("Opened pooled upstream client '%s' (max_redirects=%d)", client_id, max_redirects)
        return client


async def close_all_clients() -> None:
    """Close every pooled client and empty the pool."""
    async with _client_lock:
        while _shared_clients:
            client_id, client = _shared_clients.popitem()
            if client.is_closed:
                continue
            try:
                await client.aclose()
            except (httpx.HTTPError, OSError, RuntimeError) as e:
                logger.warning("Pooled upstream client '%s' did not close cleanly: %s", client_id, e)
            else:
                logger.debug("Closed pooled upstream client '%s'", client_id)
