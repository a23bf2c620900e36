"""Retrieval pipeline: URL guard, fetch, normalize.

``retrieve_calendar`` runs the three stages strictly in sequence for one URL.
``CalendarLoader`` holds the event set for a single consumer and discards
results of loads that were superseded or outlived their consumer.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from . import url_guard
from .ics_fetcher import ICSFetcher
from .ics_normalizer import normalize_with_report
from .models import CalendarEvent, FetchResult

logger = logging.getLogger(__name__)


async def retrieve_calendar(
    url: str,
    settings: Any = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FetchResult:
    """Validate, fetch and normalize one calendar URL.

    Args:
        url: Candidate calendar URL (untrusted)
        settings: Application settings (``Config``)
        client: Optional shared HTTP client

    Returns:
        FetchResult with events in source order

    Raises:
        IcsGridError: Any guard or fetch failure, already typed for the caller
    """
    max_length = int(getattr(settings, "max_url_length", url_guard.DEFAULT_MAX_URL_LENGTH))
    url_guard.ensure_valid(url, max_length=max_length)

    async with ICSFetcher(settings, client=client) as fetcher:
        text = await fetcher.fetch(url)

    result = normalize_with_report(text)
    if result.skipped:
        logger.info(
            "Fetched %d events from %s (%d malformed records skipped)",
            len(result.events),
            url,
            result.skipped,
        )
    else:
        logger.info("Fetched %d events from %s", len(result.events), url)
    return result


class CalendarLoader:
    """Holds the current event set of one consumer.

    Every ``load`` takes a new generation token. When a load finishes after a
    newer one was issued, or after ``close()``, its result is discarded and
    the held events are left alone. The transfer itself is not cancelled.
    """

    def __init__(
        self,
        settings: Any = None,
        client: Optional[httpx.AsyncClient] = None,
        retrieve: Any = retrieve_calendar,
    ) -> None:
        self.settings = settings
        self.client = client
        self._retrieve = retrieve
        self._generation = 0
        self._closed = False
        self._events: tuple[CalendarEvent, ...] = ()
        self.url: Optional[str] = None

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def closed(self) -> bool:
        return self._closed

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    async def load(self, url: str) -> Optional[FetchResult]:
        """Retrieve ``url`` and replace the held events on success.

        Returns:
            The FetchResult, or None when the load went stale before finishing

        Raises:
            IcsGridError: If the load is still current and retrieval failed
        """
        self._generation += 1
        token = self._generation
        try:
            result = await self._retrieve(url, self.settings, self.client)
        except Exception:
            if not self.is_current(token):
                logger.debug("Discarding failure of stale load #%d for %s", token, url)
                return None
            raise

        if not self.is_current(token):
            logger.debug("Discarding result of stale load #%d for %s", token, url)
            return None

        self._events = tuple(result.events)
        self.url = url
        return result

    def close(self) -> None:
        """Mark the consumer torn down; in-flight results will be discarded."""
        self._closed = True
