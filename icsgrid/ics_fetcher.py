"""Bounded, defensive HTTP retrieval of remote ICS calendars."""

import asyncio
import codecs
import logging
import re
from typing import Any, Optional

import httpx

from .exceptions import (
    FetchTimeoutError,
    PayloadTooLargeError,
    UnexpectedContentTypeError,
    UpstreamFetchFailedError,
)
from .http_client import create_client
from .middleware import get_request_id

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5.0
DEFAULT_FETCH_TIMEOUT = 15.0
DEFAULT_MAX_PAYLOAD_BYTES = 10 * 1024 * 1024

CALENDAR_CONTENT_TYPE_RE = re.compile(r"text/calendar|application/calendar|text/vcalendar", re.I)
ICS_URL_RE = re.compile(r"\.ics(\?.*)?$", re.I)


def is_calendar_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type and CALENDAR_CONTENT_TYPE_RE.search(content_type))


def url_looks_like_ics(url: str) -> bool:
    """True when the URL path ends in ``.ics``, optionally followed by a query."""
    return bool(ICS_URL_RE.search(url))


class ICSFetcher:
    """Async HTTP client for downloading one ICS calendar per call.

    Network calls within one ``fetch`` are strictly sequential: an advisory
    metadata probe, then the streamed full transfer. Nothing is retried.
    """

    def __init__(self, settings: Any = None, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (``Config``); missing values use defaults
            client: Optional shared HTTP client; one is created per fetcher otherwise
        """
        self.settings = settings
        self.probe_timeout = float(getattr(settings, "probe_timeout_seconds", DEFAULT_PROBE_TIMEOUT))
        self.fetch_timeout = float(getattr(settings, "fetch_timeout_seconds", DEFAULT_FETCH_TIMEOUT))
        self.max_payload_bytes = int(
            getattr(settings, "max_payload_bytes", DEFAULT_MAX_PAYLOAD_BYTES)
        )
        self.max_redirects = int(getattr(settings, "max_redirects", 5))
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None

        logger.debug("ICS fetcher initialized (shared_client: %s)", not self._owns_client)

    async def __aenter__(self) -> "ICSFetcher":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None or self.client.is_closed:
            self.client = create_client(max_redirects=self.max_redirects)
            self._owns_client = True
        return self.client

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self.client is not None and self._owns_client and not self.client.is_closed:
            await self.client.aclose()
            logger.debug("Closed individual HTTP client")
        if self._owns_client:
            self.client = None

    def _request_headers(self) -> dict[str, str]:
        request_id = get_request_id()
        if request_id and request_id != "no-request-id":
            return {"X-Request-ID": request_id}
        return {}

    async def probe_content_type(self, url: str) -> Optional[str]:
        """Read the advertised content type with a HEAD request.

        The probe is advisory: network failures, timeouts and non-success
        statuses (e.g. 405 Method Not Allowed) all return ``None``.
        """
        client = self._ensure_client()
        try:
            response = await asyncio.wait_for(
                client.head(url, headers=self._request_headers(), timeout=self.probe_timeout),
                timeout=self.probe_timeout,
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.debug("Metadata probe failed for %s (continuing): %s", url, e)
            return None

        if not 200 <= response.status_code < 400:
            logger.debug("Metadata probe for %s returned HTTP %d; ignoring", url, response.status_code)
            return None
        return response.headers.get("content-type")

    def check_content_type(self, url: str, content_type: Optional[str]) -> None:
        """Fail fast when the probe advertised a non-calendar content type.

        Raises:
            UnexpectedContentTypeError: If the type is not a calendar type and the
                URL does not end in ``.ics``
        """
        if content_type and not is_calendar_content_type(content_type) and not url_looks_like_ics(url):
            logger.warning("Rejecting %s: unexpected content type %s", url, content_type)
            raise UnexpectedContentTypeError(content_type)

    async def fetch(self, url: str) -> str:
        """Download ICS content from a URL that already passed the URL guard.

        Args:
            url: Validated http(s) URL

        Returns:
            Response body decoded as text

        Raises:
            UnexpectedContentTypeError: Probe advertised a non-calendar type
            PayloadTooLargeError: Body exceeded the size cap while streaming
            FetchTimeoutError: Transfer exceeded the hard deadline
            UpstreamFetchFailedError: Non-success status, redirect overflow or
                transport failure
        """
        content_type = await self.probe_content_type(url)
        self.check_content_type(url, content_type)

        logger.debug("Fetching ICS from %s", url)
        try:
            body, encoding = await asyncio.wait_for(
                self._download(url), timeout=self.fetch_timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Timeout fetching ICS from %s", url)
            raise FetchTimeoutError(self.fetch_timeout) from e
        except httpx.TooManyRedirects as e:
            logger.warning("Too many redirects fetching ICS from %s", url)
            raise UpstreamFetchFailedError(f"Too many redirects (max {self.max_redirects})") from e
        except httpx.HTTPError as e:
            logger.warning("Network error fetching ICS from %s: %s", url, e)
            raise UpstreamFetchFailedError(f"Network error: {e}") from e

        logger.debug("Successfully fetched ICS from %s - %d bytes", url, len(body))
        try:
            codecs.lookup(encoding)
        except LookupError:
            logger.debug("Unknown charset %r for %s; decoding as utf-8", encoding, url)
            encoding = "utf-8"
        return body.decode(encoding, errors="replace")

    async def _download(self, url: str) -> tuple[bytes, str]:
        """Stream the body, aborting as soon as it exceeds the size cap."""
        client = self._ensure_client()
        async with client.stream(
            "GET", url, headers=self._request_headers(), timeout=self.fetch_timeout
        ) as response:
            if not 200 <= response.status_code < 400:
                logger.warning("Upstream %s responded HTTP %d", url, response.status_code)
                raise UpstreamFetchFailedError(
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    status=response.status_code,
                )

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_payload_bytes:
                logger.warning("Declared Content-Length %s exceeds cap for %s", declared, url)
                raise PayloadTooLargeError(self.max_payload_bytes)

            chunks: list[bytes] = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > self.max_payload_bytes:
                    logger.warning(
                        "Aborting %s: %d bytes exceeds %d byte limit", url, total, self.max_payload_bytes
                    )
                    raise PayloadTooLargeError(self.max_payload_bytes)
                chunks.append(chunk)

            encoding = response.charset_encoding or "utf-8"
        return b"".join(chunks), encoding
