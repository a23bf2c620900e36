"""Unit tests for icsgrid.url_guard."""

import logging

import pytest

from icsgrid import url_guard
from icsgrid.exceptions import (
    InvalidUrlError,
    PrivateHostRejectedError,
    UnsupportedSchemeError,
    UrlTooLongError,
)
from icsgrid.url_guard import GuardReason, SecurityEventLogger, ensure_valid, is_private_host, validate

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestValidate:
    """Tests for validate()."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://calendar.example.com/team.ics",
            "http://example.com/cal",
            "https://8.8.8.8/calendar.ics",
            "https://example.com:8443/feed?token=abc",
        ],
    )
    def test_validate_when_public_http_url_then_ok(self, url: str) -> None:
        result = validate(url)

        assert result.ok is True
        assert result.reason is None
        assert result.parsed is not None
        assert result.parsed.hostname is not None

    @pytest.mark.parametrize("url", ["", "   ", None, 42, "not-a-url", "http:///calendar.ics"])
    def test_validate_when_not_a_url_then_invalid(self, url: object) -> None:
        assert validate(url).reason is GuardReason.INVALID_URL

    def test_validate_when_whitespace_inside_then_invalid(self) -> None:
        assert validate("https://exa mple.com/a.ics").reason is GuardReason.INVALID_URL

    def test_validate_when_bad_port_then_invalid(self) -> None:
        assert validate("https://example.com:99999/a.ics").reason is GuardReason.INVALID_URL

    @pytest.mark.parametrize("url", ["ftp://example.com/a.ics", "file:///etc/passwd", "javascript:alert(1)"])
    def test_validate_when_other_scheme_then_unsupported(self, url: str) -> None:
        assert validate(url).reason is GuardReason.UNSUPPORTED_SCHEME

    def test_validate_when_too_long_then_rejected(self) -> None:
        url = "https://example.com/" + "a" * 2000

        assert validate(url).reason is GuardReason.URL_TOO_LONG

    def test_validate_when_custom_length_limit_then_applied(self) -> None:
        assert validate("https://example.com/calendar.ics", max_length=20).reason is GuardReason.URL_TOO_LONG

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:3000/cal.ics",
            "http://LOCALHOST/cal.ics",
            "http://127.0.0.1/cal.ics",
            "http://127.9.9.9/cal.ics",
            "http://10.1.2.3/cal.ics",
            "http://192.168.1.10/cal.ics",
            "http://172.16.0.1/cal.ics",
            "http://172.31.255.255/cal.ics",
            "http://[::1]/cal.ics",
        ],
    )
    def test_validate_when_private_host_then_rejected(self, url: str) -> None:
        assert validate(url).reason is GuardReason.PRIVATE_HOST_REJECTED

    def test_validate_when_172_outside_private_block_then_ok(self) -> None:
        assert validate("http://172.32.0.1/cal.ics").ok is True

    def test_validate_when_rejected_then_message_is_human_readable(self) -> None:
        result = validate("http://localhost/cal.ics")

        assert result.message == "Invalid hostname (localhost or private address not allowed)"


class TestIsPrivateHost:
    """Tests for is_private_host()."""

    def test_is_private_host_when_dotted_private_prefix_then_true(self) -> None:
        assert is_private_host("10.internal.example") is True

    def test_is_private_host_when_public_name_then_false(self) -> None:
        assert is_private_host("calendar.google.com") is False

    def test_is_private_host_when_empty_then_false(self) -> None:
        assert is_private_host(None) is False
        assert is_private_host("") is False


class TestEnsureValid:
    """Tests for ensure_valid()."""

    def test_ensure_valid_when_ok_then_returns_parsed(self) -> None:
        parsed = ensure_valid("https://example.com/a.ics")

        assert parsed.scheme == "https"
        assert parsed.hostname == "example.com"

    @pytest.mark.parametrize(
        ("url", "error_type"),
        [
            ("", InvalidUrlError),
            ("gopher://example.com/a.ics", UnsupportedSchemeError),
            ("https://example.com/" + "x" * 2100, UrlTooLongError),
            ("http://localhost/a.ics", PrivateHostRejectedError),
        ],
    )
    def test_ensure_valid_when_rejected_then_raises_typed_error(self, url: str, error_type: type) -> None:
        with pytest.raises(error_type) as exc_info:
            ensure_valid(url)

        assert exc_info.value.http_status == 400
        assert exc_info.value.to_payload() == {"error": exc_info.value.message}


class TestSecurityEventLogger:
    """Tests for SecurityEventLogger."""

    def test_log_event_when_medium_severity_then_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger=url_guard.__name__):
            SecurityEventLogger().log_event(
                {
                    "event_type": "INPUT_VALIDATION_FAILURE",
                    "severity": "MEDIUM",
                    "resource": "http://localhost/",
                    "details": {"description": "blocked"},
                }
            )

        assert caplog.records[-1].levelno == logging.WARNING
        assert "INPUT_VALIDATION_FAILURE" in caplog.records[-1].getMessage()

    def test_private_host_rejection_is_logged_as_security_event(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger=url_guard.__name__):
            validate("http://192.168.0.1/cal.ics")

        assert any("PrivateHostRejected" in record.getMessage() for record in caplog.records)
