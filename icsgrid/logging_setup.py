"""
Central logging configuration for icsgrid.

Installs a colorized console handler, stamps every record with the current
request correlation ID and suppresses verbose debug logs from third-party
libraries while keeping icsgrid's own diagnostics.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

CONSOLE_FORMAT = (
    "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
)

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party libraries that generate excessive debug logs
NOISY_LOGGERS = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "icalendar": logging.WARNING,
}


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for request tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Import here to avoid circular dependency
        from .middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(
    debug_mode: bool = False,
    level_name: Optional[str] = None,
) -> None:
    """Configure console logging for icsgrid.

    Args:
        debug_mode: Whether to enable debug logging for icsgrid modules
        level_name: Root level name (DEBUG, INFO, WARNING, ERROR)

    Environment Variables:
        ICSGRID_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ICSGRID_LOG_LEVEL: Override root log level
    """
    env_debug = os.getenv("ICSGRID_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_log_level = os.getenv("ICSGRID_LOG_LEVEL", "").strip().upper()
    final_debug = debug_mode or env_debug

    root_level = logging.INFO
    for candidate in (level_name, env_log_level):
        if candidate and candidate.upper() in ("DEBUG", "INFO", "WARNING", "ERROR"):
            root_level = getattr(logging, candidate.upper())
    if final_debug:
        root_level = logging.DEBUG

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    correlation_filter = CorrelationIdFilter()

    # Only add a handler if none exist so repeated calls do not duplicate output
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(
            ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS)
        )
        root_logger.addHandler(handler)

    for existing_handler in root_logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
            existing_handler.addFilter(correlation_filter)

    for logger_name, level in NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(level)

    logging.getLogger("icsgrid").setLevel(logging.DEBUG if final_debug else root_level)

    if final_debug:
        root_logger.info(
            "Debug logging enabled for icsgrid modules. Third-party debug logs suppressed."
        )


def get_logging_status() -> dict[str, str]:
    """Return the effective level of the root and key loggers."""
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("icsgrid", *NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
