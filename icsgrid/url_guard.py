"""Calendar URL validation performed before any network access.

The private-host check is hostname-literal based. It does not resolve DNS and
does not re-validate redirect targets, so a public name that resolves to a
private address, or a public URL that redirects to one, is not caught. A
stronger guard would re-check the resolved IP of every hop against
``PRIVATE_NETWORKS``.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from urllib.parse import SplitResult, urlsplit

from .exceptions import (
    InvalidUrlError,
    PrivateHostRejectedError,
    UnsupportedSchemeError,
    UrlTooLongError,
    UrlValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_URL_LENGTH = 2000

ALLOWED_SCHEMES = ("http", "https")

PRIVATE_HOSTNAMES = frozenset({"localhost", "loopback"})

PRIVATE_NETWORKS = (
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("::1/128"),
)

# Dotted hostnames that are not valid IP literals (e.g. "127.1") but share a
# private prefix are rejected as well.
_PRIVATE_PREFIX_RE = re.compile(r"^(127\.|10\.|192\.168\.|172\.(1[6-9]|2[0-9]|3[01])\.)")

_WHITESPACE_OR_CONTROL_RE = re.compile(r"[\s\x00-\x1f\x7f]")


class GuardReason(str, Enum):
    """Why a URL was rejected."""

    INVALID_URL = "InvalidUrl"
    UNSUPPORTED_SCHEME = "UnsupportedScheme"
    URL_TOO_LONG = "UrlTooLong"
    PRIVATE_HOST_REJECTED = "PrivateHostRejected"


_REASON_MESSAGES = {
    GuardReason.INVALID_URL: "Missing or invalid URL",
    GuardReason.UNSUPPORTED_SCHEME: "Only http(s) URLs are allowed",
    GuardReason.URL_TOO_LONG: "URL too long",
    GuardReason.PRIVATE_HOST_REJECTED: "Invalid hostname (localhost or private address not allowed)",
}

_REASON_ERRORS: dict[GuardReason, type[UrlValidationError]] = {
    GuardReason.INVALID_URL: InvalidUrlError,
    GuardReason.UNSUPPORTED_SCHEME: UnsupportedSchemeError,
    GuardReason.URL_TOO_LONG: UrlTooLongError,
    GuardReason.PRIVATE_HOST_REJECTED: PrivateHostRejectedError,
}


@dataclass(frozen=True)
class UrlValidation:
    """Outcome of ``validate``."""

    ok: bool
    reason: Optional[GuardReason] = None
    parsed: Optional[SplitResult] = None

    @property
    def message(self) -> Optional[str]:
        return _REASON_MESSAGES[self.reason] if self.reason else None

    def to_error(self) -> UrlValidationError:
        if self.reason is None:
            raise ValueError("URL validation succeeded; no error to build")
        return _REASON_ERRORS[self.reason](_REASON_MESSAGES[self.reason])


class SecurityEventLogger:
    """Lightweight security event logger."""

    def log_event(self, event_data: dict[str, Any]) -> None:
        """Log security event at a level matching its severity.

        Args:
            event_data: Security event data to log
        """
        event_type = event_data.get("event_type", "unknown")
        severity = event_data.get("severity", "unknown")
        resource = event_data.get("resource", "unknown")
        description = event_data.get("details", {}).get("description", "No description")

        message = (
            f"Security Event - Type: {event_type}, Severity: {severity}, "
            f"Resource: {resource}, Description: {description}"
        )

        if severity == "LOW":
            logger.debug(message)
        else:
            logger.warning(message)


_security_logger = SecurityEventLogger()


def is_private_host(hostname: Optional[str]) -> bool:
    """Classify a hostname literal as loopback/private.

    Args:
        hostname: Hostname as returned by ``urlsplit`` (IPv6 without brackets)

    Returns:
        True if the hostname names a loopback or private-range host
    """
    if not hostname:
        return False
    host = hostname.strip("[]").rstrip(".").lower()
    if host in PRIVATE_HOSTNAMES:
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return bool(_PRIVATE_PREFIX_RE.match(host))
    return any(address.version == net.version and address in net for net in PRIVATE_NETWORKS)


def _reject(url: str, reason: GuardReason, severity: str = "LOW") -> UrlValidation:
    _security_logger.log_event(
        {
            "event_type": "INPUT_VALIDATION_FAILURE",
            "severity": severity,
            "resource": url[:200],
            "action": "url_validation",
            "result": "blocked",
            "details": {"description": f"{reason.value}: {_REASON_MESSAGES[reason]}"},
        }
    )
    return UrlValidation(ok=False, reason=reason)


def validate(url: Any, max_length: int = DEFAULT_MAX_URL_LENGTH) -> UrlValidation:
    """Validate and classify a candidate calendar URL.

    Checks, in order: URL syntax, scheme, length, private hostname.

    Args:
        url: Candidate URL string
        max_length: Maximum accepted URL length in characters

    Returns:
        UrlValidation with ``ok`` set, or the first failing ``reason``
    """
    if not isinstance(url, str) or not url.strip():
        return _reject(str(url or ""), GuardReason.INVALID_URL)
    if _WHITESPACE_OR_CONTROL_RE.search(url):
        return _reject(url, GuardReason.INVALID_URL)

    try:
        parsed = urlsplit(url)
        # Accessing .port validates the port component
        _ = parsed.port
    except ValueError:
        return _reject(url, GuardReason.INVALID_URL)

    if not parsed.scheme:
        return _reject(url, GuardReason.INVALID_URL)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return _reject(url, GuardReason.UNSUPPORTED_SCHEME)
    if not parsed.netloc or not parsed.hostname:
        return _reject(url, GuardReason.INVALID_URL)

    if len(url) > max_length:
        return _reject(url, GuardReason.URL_TOO_LONG)

    if is_private_host(parsed.hostname):
        return _reject(url, GuardReason.PRIVATE_HOST_REJECTED, severity="MEDIUM")

    logger.debug("URL validation passed: %s", url)
    return UrlValidation(ok=True, parsed=parsed)


def ensure_valid(url: Any, max_length: int = DEFAULT_MAX_URL_LENGTH) -> SplitResult:
    """Validate ``url`` and raise the matching ``UrlValidationError`` on failure."""
    result = validate(url, max_length=max_length)
    if not result.ok:
        raise result.to_error()
    assert result.parsed is not None
    return result.parsed
