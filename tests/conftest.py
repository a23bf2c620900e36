"""Shared fixtures for icsgrid tests."""

from collections.abc import Callable, Generator
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from icsgrid.http_client import create_client


def pytest_configure(config: Any) -> None:
    """Register test markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests spanning several components")
    config.addinivalue_line("markers", "fast: Tests that complete in milliseconds")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear icsgrid environment overrides so host settings never leak into tests."""
    for name in (
        "ICSGRID_TEST_TIME",
        "ICSGRID_CONFIG",
        "ICSGRID_DEBUG",
        "ICSGRID_LOG_LEVEL",
        "ICSGRID_PORT",
        "ICSGRID_WEEK_START",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def fast_settings() -> SimpleNamespace:
    """Fetcher settings with short deadlines.

    Fields mirror ``icsgrid.config_loader.Config``.
    """
    return SimpleNamespace(
        probe_timeout_seconds=0.2,
        fetch_timeout_seconds=0.5,
        max_redirects=5,
        max_payload_bytes=10 * 1024 * 1024,
        max_url_length=2000,
        week_start="monday",
        cors_allow_origin="*",
    )


@pytest.fixture
def mock_client_factory() -> Callable[..., httpx.AsyncClient]:
    """Build an httpx client whose requests are answered by ``handler``."""

    def _factory(handler: Callable[[httpx.Request], Any], max_redirects: int = 5) -> httpx.AsyncClient:
        return create_client(max_redirects=max_redirects, transport=httpx.MockTransport(handler))

    return _factory


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def standup_ics() -> str:
    """One timed UTC event, "Standup" on 2024-06-03 09:00-09:15."""
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//icsgrid test//EN\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:abc\r\n"
        "SUMMARY:Standup\r\n"
        "DTSTART:20240603T090000Z\r\n"
        "DTEND:20240603T091500Z\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )


@pytest.fixture
def mixed_ics() -> str:
    """Three well-formed events around two malformed ones.

    Records in source order:
      0. "Planning" all-day on 2024-06-10
      1. malformed DTSTART
      2. "Review" 2024-06-11 14:00Z with a 90 minute DURATION
      3. unterminated record (next BEGIN:VEVENT arrives first)
      4. "Retro" 2024-06-12 16:00Z-17:00Z
    """
    return (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:planning\r\n"
        "SUMMARY:Planning\r\n"
        "DTSTART;VALUE=DATE:20240610\r\n"
        "DTEND;VALUE=DATE:20240611\r\n"
        "END:VEVENT\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:broken\r\n"
        "SUMMARY:Broken\r\n"
        "DTSTART:not-a-date\r\n"
        "END:VEVENT\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:review\r\n"
        "SUMMARY:Review\r\n"
        "DTSTART:20240611T140000Z\r\n"
        "DURATION:PT1H30M\r\n"
        "LOCATION:Room 4\r\n"
        "END:VEVENT\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:dangling\r\n"
        "SUMMARY:Dangling\r\n"
        "DTSTART:20240611T150000Z\r\n"
        "BEGIN:VEVENT\r\n"
        "UID:retro\r\n"
        "SUMMARY:Retro\r\n"
        "DTSTART:20240612T160000Z\r\n"
        "DTEND:20240612T170000Z\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )
