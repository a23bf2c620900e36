"""Time helpers shared by the normalizer, grid builder and renderer."""

from __future__ import annotations

import datetime
import logging
import os
from typing import Optional, Union

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

Instant = Union[datetime.date, datetime.datetime]


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via ICSGRID_TEST_TIME environment variable.
    Format: ISO 8601 datetime string (e.g., "2024-06-15T08:20:00-07:00")
    """
    test_time = os.environ.get("ICSGRID_TEST_TIME")
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is not None:
                return dt.astimezone(datetime.timezone.utc)
            # Assume naive datetime is already UTC
            return dt.replace(tzinfo=datetime.timezone.utc)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse ICSGRID_TEST_TIME=%r: %s", test_time, e)

    return datetime.datetime.now(datetime.timezone.utc)


def today_utc() -> datetime.date:
    return now_utc().date()


def ensure_timezone_aware(dt: datetime.datetime) -> datetime.datetime:
    """Ensure datetime is timezone-aware (UTC if originally naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def as_instant(value: Instant) -> datetime.datetime:
    """Coerce a date or datetime into an aware datetime for comparisons.

    Dates become midnight UTC and floating datetimes are read as UTC. The
    wall-clock value is never shifted.
    """
    if isinstance(value, datetime.datetime):
        return ensure_timezone_aware(value)
    return datetime.datetime.combine(value, datetime.time.min, tzinfo=datetime.timezone.utc)


def day_of(value: Instant) -> datetime.date:
    """Calendar day of an instant, taken from its wall-clock date portion."""
    if isinstance(value, datetime.datetime):
        return value.date()
    return value


def serialize_iso(value: Optional[Instant]) -> Optional[str]:
    """Serialize an instant to ISO-8601.

    Zero-offset datetimes end in ``Z``, other offsets are kept, floating
    datetimes carry no suffix and dates are ``YYYY-MM-DD``.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        if value.utcoffset() == datetime.timedelta(0):
            return value.replace(tzinfo=None).isoformat() + "Z"
        return value.isoformat()
    return value.isoformat()


def parse_day(text: str) -> datetime.date:
    """Parse a ``YYYY-MM-DD`` (or ISO datetime) query value into a date.

    Raises:
        ValueError: If the value is not an ISO-8601 date
    """
    return date_parser.isoparse(text.strip()).date()
