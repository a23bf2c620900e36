"""aiohttp server for icsgrid: app factory and run loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Any, Optional

import httpx
from aiohttp import web

from .http_client import close_all_clients, get_shared_client
from .logging_setup import configure_logging
from .middleware import correlation_id_middleware, make_cors_middleware
from .routes import register_api_routes

logger = logging.getLogger(__name__)


def _get_config_value(config: Any, key: str, default: Any = None) -> Any:
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)


def _make_app(config: Any, client: Optional[httpx.AsyncClient] = None) -> web.Application:
    """Create the aiohttp application with middlewares and API routes.

    Args:
        config: ``Config`` instance or plain mapping
        client: Optional HTTP client used for every upstream fetch; the shared
            pooled client is used when omitted
    """
    app = web.Application(
        middlewares=[
            correlation_id_middleware,
            make_cors_middleware(_get_config_value(config, "cors_allow_origin", "*")),
        ]
    )

    max_redirects = int(_get_config_value(config, "max_redirects", 5))

    async def _client_provider() -> httpx.AsyncClient:
        if client is not None:
            return client
        return await get_shared_client("upstream", max_redirects=max_redirects)

    register_api_routes(app, config, _client_provider)

    async def _cleanup(_app: web.Application) -> None:
        await close_all_clients()
        logger.debug("Upstream client pool released")

    app.on_cleanup.append(_cleanup)
    return app


async def _serve(config: Any, external_stop_event: Optional[asyncio.Event] = None) -> None:
    """Serve the API until the stop event fires.

    Args:
        config: ``Config`` instance or plain mapping
        external_stop_event: Event owned by the caller. When given, no signal
            handlers are installed and the caller decides when to stop.
    """
    stop_event = external_stop_event or asyncio.Event()

    app = _make_app(config)
    runner = web.AppRunner(app)
    await runner.setup()

    host = _get_config_value(config, "server_bind", "0.0.0.0")  # nosec: B104 - default bind; override via config/env
    port = int(_get_config_value(config, "server_port", 4000))
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Could not bind icsgrid to %s:%d", host, port)
        await runner.cleanup()
        raise

    logger.info("icsgrid listening on http://%s:%d", host, port)

    loop = asyncio.get_running_loop()
    if external_stop_event is None:

        def _on_signal() -> None:
            logger.info("Signal received, stopping icsgrid")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Caller supplied a stop event; signal handlers not installed")

    await stop_event.wait()
    logger.info("Stopping HTTP listener")

    # on_cleanup closes the shared HTTP clients
    await runner.cleanup()
    logger.info("icsgrid stopped")


def start_server(config: Any) -> None:
    """Configure logging and run the server on a fresh event loop.

    Returns once SIGINT or SIGTERM has been handled.
    """
    configure_logging(
        debug_mode=bool(_get_config_value(config, "debug_logging", False)),
        level_name=_get_config_value(config, "log_level"),
    )
    logger.debug("Logging configuration applied")

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("icsgrid interrupted")
