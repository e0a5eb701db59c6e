"""Structured error tests.

Covers the exception hierarchy and the JSON error bodies built from it.
"""

from src.core.errors import (
    ErrorResponse,
    EventGatewayError,
    ServiceDegradedError,
    UpstreamResponseError,
    UpstreamUnavailableError,
)


class TestErrorHierarchy:
    """All custom errors inherit from EventGatewayError."""

    def test_upstream_unavailable_inherits(self) -> None:
        assert issubclass(UpstreamUnavailableError, EventGatewayError)

    def test_upstream_response_inherits(self) -> None:
        assert issubclass(UpstreamResponseError, EventGatewayError)

    def test_service_degraded_inherits(self) -> None:
        assert issubclass(ServiceDegradedError, EventGatewayError)

    def test_upstream_unavailable_message(self) -> None:
        err = UpstreamUnavailableError("/addEvent", "Server error: 503")
        assert str(err) == "Upstream unavailable: /addEvent — Server error: 503"
        assert err.status_code == 502

    def test_upstream_response_message(self) -> None:
        err = UpstreamResponseError("/getUserById/1", "Not Found", status_code=404)
        assert "HTTP 404" in str(err)
        assert err.upstream_status == 404

    def test_service_degraded_message(self) -> None:
        err = ServiceDegradedError("AddEvent", 12.5)
        assert str(err) == "AddEvent service temporarily unavailable. Please try again later."
        assert err.status_code == 503
        assert err.retry_after == 12.5

    def test_service_degraded_negative_retry_clamped(self) -> None:
        assert ServiceDegradedError("AddEvent", -1.0).retry_after == 0.0


class TestErrorResponse:
    def test_degraded_has_no_detail(self) -> None:
        resp = ErrorResponse.from_exception(ServiceDegradedError("AddEvent", 3.0))
        assert resp.to_content() == {
            "error": "AddEvent service temporarily unavailable. Please try again later."
        }

    def test_upstream_error_has_detail(self) -> None:
        exc = UpstreamUnavailableError("/getEvents", "Server error: 500")
        content = ErrorResponse.from_exception(exc).to_content()
        assert content["error"] == "Upstream event service unavailable"
        assert content["detail"] == str(exc)

    def test_unhandled_exception_hides_details(self) -> None:
        resp = ErrorResponse.from_exception(RuntimeError("secret path /etc/passwd"))
        assert resp.error == "An internal error occurred"
        assert "secret" not in str(resp.to_content())
