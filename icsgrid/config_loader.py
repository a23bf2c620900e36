"""icsgrid.config_loader

Lightweight config loader for icsgrid.

- Reads YAML (PyYAML) or JSON, chosen by file suffix.
- Overlays ``ICSGRID_*`` environment variables on top of file values.
- Exposes a typed dataclass ``Config`` and a ``load_config()`` helper that
  accepts an optional path override.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import GridRangeError
from .grid_builder import parse_week_start

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("icsgrid.yaml")

# Environment variable -> config key
ENV_OVERRIDES = {
    "ICSGRID_BIND": "server_bind",
    "ICSGRID_PORT": "server_port",
    "ICSGRID_LOG_LEVEL": "log_level",
    "ICSGRID_DEBUG": "debug_logging",
    "ICSGRID_PROBE_TIMEOUT": "probe_timeout_seconds",
    "ICSGRID_FETCH_TIMEOUT": "fetch_timeout_seconds",
    "ICSGRID_MAX_REDIRECTS": "max_redirects",
    "ICSGRID_MAX_PAYLOAD_BYTES": "max_payload_bytes",
    "ICSGRID_MAX_URL_LENGTH": "max_url_length",
    "ICSGRID_WEEK_START": "week_start",
    "ICSGRID_CORS_ORIGIN": "cors_allow_origin",
}

_TRUTHY = ("1", "true", "yes", "on")


@dataclass
class Config:
    """Typed configuration for icsgrid.

    Fields:
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        debug_logging: enable debug logging for icsgrid modules
        probe_timeout_seconds: timeout of the advisory HEAD probe
        fetch_timeout_seconds: hard deadline of the full transfer
        max_redirects: redirects followed per request (0..5)
        max_payload_bytes: response size cap enforced while streaming
        max_url_length: longest accepted calendar URL
        week_start: first weekday of grids (name or 0=Monday..6=Sunday)
        cors_allow_origin: value of Access-Control-Allow-Origin
    """

    server_bind: str = "0.0.0.0"  # nosec: B104 - intentional default; override via config/env
    server_port: int = 4000
    log_level: str = "INFO"
    debug_logging: bool = False
    probe_timeout_seconds: float = 5.0
    fetch_timeout_seconds: float = 15.0
    max_redirects: int = 5
    max_payload_bytes: int = 10 * 1024 * 1024
    max_url_length: int = 2000
    week_start: str = "monday"
    cors_allow_origin: str = "*"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced, out-of-range values are clamped and a
        warning is logged for every coercion.
        """
        if data is None:
            data = {}
        defaults = cls()

        def _coerce_int(key: str, default: int, low: int, high: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < low or value > high:
                clamped = min(max(value, low), high)
                logger.warning("Config %s=%d out of range; coercing to %d", key, value, clamped)
                return clamped
            return value

        def _coerce_float(key: str, default: float, low: float, high: float) -> float:
            raw = data.get(key, default)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a number; using default %s", key, raw, default)
                return default
            if value < low or value > high:
                clamped = min(max(value, low), high)
                logger.warning("Config %s=%s out of range; coercing to %s", key, value, clamped)
                return clamped
            return value

        debug_raw = data.get("debug_logging", defaults.debug_logging)
        if isinstance(debug_raw, str):
            debug_logging = debug_raw.strip().lower() in _TRUTHY
        else:
            debug_logging = bool(debug_raw)

        server_bind = data.get("server_bind") or defaults.server_bind
        log_level = str(data.get("log_level") or defaults.log_level).upper()
        week_start = str(data.get("week_start") or defaults.week_start).strip().lower()
        try:
            parse_week_start(week_start)
        except GridRangeError:
            logger.warning(
                "Config week_start=%r names no weekday; using default %s", week_start, defaults.week_start
            )
            week_start = defaults.week_start
        cors_origin = str(data.get("cors_allow_origin") or defaults.cors_allow_origin)

        return cls(
            server_bind=str(server_bind),
            server_port=_coerce_int("server_port", defaults.server_port, 1, 65535),
            log_level=log_level,
            debug_logging=debug_logging,
            probe_timeout_seconds=_coerce_float(
                "probe_timeout_seconds", defaults.probe_timeout_seconds, 0.1, 60.0
            ),
            fetch_timeout_seconds=_coerce_float(
                "fetch_timeout_seconds", defaults.fetch_timeout_seconds, 0.1, 300.0
            ),
            max_redirects=_coerce_int("max_redirects", defaults.max_redirects, 0, 5),
            max_payload_bytes=_coerce_int(
                "max_payload_bytes", defaults.max_payload_bytes, 1, 10 * 1024 * 1024
            ),
            max_url_length=_coerce_int("max_url_length", defaults.max_url_length, 16, 2000),
            week_start=week_start,
            cors_allow_origin=cors_origin,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _load_mapping(path: Path) -> Any:
    """Load a YAML or JSON file; JSON is chosen by the ``.json`` suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect config values set through ``ICSGRID_*`` environment variables."""
    environ = os.environ if environ is None else environ
    return {key: environ[var] for var, key in ENV_OVERRIDES.items() if environ.get(var)}


def load_config(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a YAML/JSON file and the environment.

    Args:
        path: Optional path to the config file. Defaults to ``ICSGRID_CONFIG``
              or ./icsgrid.yaml.
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Config dataclass instance with values from file, env, or defaults.

    Raises:
        ValueError: If the file exists but its top level is not a mapping.
    """
    environ = os.environ if environ is None else environ
    p = Path(path or environ.get("ICSGRID_CONFIG") or DEFAULT_CONFIG_PATH)
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if p.exists():
        loaded = _load_mapping(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
        raw.update(loaded)
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    raw.update(env_overrides(environ))
    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
