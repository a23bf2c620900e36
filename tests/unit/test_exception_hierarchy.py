"""Tests for the icsgrid exception hierarchy and its HTTP mapping."""

import pytest

from icsgrid.exceptions import (
    FetchTimeoutError,
    GridRangeError,
    IcsGridError,
    InvalidUrlError,
    PayloadTooLargeError,
    PrivateHostRejectedError,
    UnexpectedContentTypeError,
    UnsupportedSchemeError,
    UpstreamError,
    UpstreamFetchFailedError,
    UrlTooLongError,
    UrlValidationError,
)

pytestmark = [pytest.mark.unit, pytest.mark.fast]


class TestHierarchy:
    """Inheritance relationships."""

    @pytest.mark.parametrize(
        "error_type",
        [InvalidUrlError, UnsupportedSchemeError, UrlTooLongError, PrivateHostRejectedError],
    )
    def test_url_errors_are_validation_errors(self, error_type: type) -> None:
        assert issubclass(error_type, UrlValidationError)
        assert issubclass(error_type, IcsGridError)

    @pytest.mark.parametrize("error_type", [UpstreamFetchFailedError, PayloadTooLargeError, FetchTimeoutError])
    def test_fetch_errors_are_upstream_errors(self, error_type: type) -> None:
        assert issubclass(error_type, UpstreamError)

    def test_grid_range_error_is_value_error(self) -> None:
        assert issubclass(GridRangeError, ValueError)

    def test_url_error_reasons(self) -> None:
        assert PrivateHostRejectedError.reason == "PrivateHostRejected"
        assert UrlTooLongError.reason == "UrlTooLong"


class TestPayloads:
    """Status codes and JSON bodies."""

    def test_validation_error_payload(self) -> None:
        error = UnsupportedSchemeError("Only http(s) URLs are allowed")

        assert error.http_status == 400
        assert error.to_payload() == {"error": "Only http(s) URLs are allowed"}

    def test_content_type_error_payload(self) -> None:
        error = UnexpectedContentTypeError("application/json")

        assert error.http_status == 400
        assert error.to_payload() == {"error": "Content-Type non sembra un ICS: application/json"}
        assert error.content_type == "application/json"

    def test_upstream_error_with_status_maps_to_502(self) -> None:
        error = UpstreamFetchFailedError("HTTP 503: Service Unavailable", status=503)

        assert error.http_status == 502
        assert error.to_payload() == {"error": "Failed fetching remote ICS", "status": 503}

    @pytest.mark.parametrize(
        "error",
        [
            UpstreamFetchFailedError("Network error: refused"),
            PayloadTooLargeError(1024),
            FetchTimeoutError(15.0),
        ],
    )
    def test_upstream_error_without_status_maps_to_500(self, error: UpstreamError) -> None:
        assert error.http_status == 500
        assert error.to_payload() == {"error": "Failed to fetch or parse ICS", "details": error.message}

    def test_timeout_message_names_deadline(self) -> None:
        assert FetchTimeoutError(15.0).message == "Request timeout after 15s"

    def test_grid_range_error_payload(self) -> None:
        error = GridRangeError("Unknown view: year")

        assert error.http_status == 400
        assert error.to_payload() == {"error": "Unknown view: year"}
