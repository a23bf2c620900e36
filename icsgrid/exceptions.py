"""Exception hierarchy for calendar retrieval and grid errors.

Every error raised by the retrieval pipeline derives from ``IcsGridError`` and
knows the HTTP status and JSON payload it maps to, so the route layer can
translate failures in a single place.
"""

from __future__ import annotations

from typing import Any, Optional


class IcsGridError(Exception):
    """Base exception for all icsgrid pipeline errors.

    Subclasses set ``http_status`` and may override ``to_payload()``.
    """

    http_status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON error body for this error."""
        return {"error": "Failed to fetch or parse ICS", "details": self.message}


class UrlValidationError(IcsGridError):
    """The candidate calendar URL was rejected before any network access.

    Should result in HTTP 400 Bad Request response.
    """

    http_status = 400
    reason = "InvalidUrl"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidUrlError(UrlValidationError):
    """URL is empty or not syntactically a URL."""

    reason = "InvalidUrl"


class UnsupportedSchemeError(UrlValidationError):
    """URL scheme is not http or https."""

    reason = "UnsupportedScheme"


class UrlTooLongError(UrlValidationError):
    """URL exceeds the configured maximum length."""

    reason = "UrlTooLong"


class PrivateHostRejectedError(UrlValidationError):
    """URL hostname is a loopback or private-range literal."""

    reason = "PrivateHostRejected"


class UnexpectedContentTypeError(IcsGridError):
    """The metadata probe advertised a content type that is not a calendar.

    Treated as an input error even though it is detected after the probe.
    """

    http_status = 400

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Content-Type non sembra un ICS: {content_type}")
        self.content_type = content_type

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class UpstreamError(IcsGridError):
    """Base class for failures of the remote calendar server.

    Maps to 502 when the upstream status is known, otherwise 500.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def http_status(self) -> int:  # type: ignore[override]
        return 502 if self.status is not None else 500

    def to_payload(self) -> dict[str, Any]:
        if self.status is not None:
            return {"error": "Failed fetching remote ICS", "status": self.status}
        return super().to_payload()


class UpstreamFetchFailedError(UpstreamError):
    """Transport failure, redirect overflow or a non-success upstream status."""


class PayloadTooLargeError(UpstreamError):
    """Response body exceeded the size cap while streaming."""

    def __init__(self, limit_bytes: int) -> None:
        super().__init__(f"Response exceeds maximum size of {limit_bytes} bytes")
        self.limit_bytes = limit_bytes


class FetchTimeoutError(UpstreamError):
    """The full transfer did not complete within the hard deadline."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Request timeout after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class GridRangeError(IcsGridError, ValueError):
    """Invalid grid request: bad date range, unknown view or week start.

    Should result in HTTP 400 Bad Request response.
    """

    http_status = 400

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}
