"""Structured errors for the event-gateway service.

Custom exception hierarchy separating transient upstream failures
(retried, then surfaced), non-transient upstream failures (surfaced
immediately) and breaker rejections (never reach upstream).
"""

from pydantic import BaseModel


class EventGatewayError(Exception):
    """Base exception for all event-gateway errors."""

    status_code: int = 502
    error: str = "Upstream event service error"


class UpstreamUnavailableError(EventGatewayError):
    """Raised when the event service cannot be reached or answers 5xx.

    Only raised once the retry bound has been exhausted (or after the
    single attempt of a bare call).
    """

    error = "Upstream event service unavailable"

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        self.detail = detail
        msg = f"Upstream unavailable: {path}"
        if detail:
            msg += f" — {detail}"
        super().__init__(msg)


class UpstreamResponseError(EventGatewayError):
    """Raised for a non-transient upstream answer: 4xx or an unusable body."""

    error = "Invalid response from upstream event service"

    def __init__(self, path: str, detail: str = "", status_code: int | None = None) -> None:
        self.path = path
        self.detail = detail
        self.upstream_status = status_code
        msg = f"Upstream rejected {path}"
        if status_code is not None:
            msg += f" with HTTP {status_code}"
        if detail:
            msg += f" — {detail}"
        super().__init__(msg)


class ServiceDegradedError(EventGatewayError):
    """Raised when the breaker is degraded and the request is not a probe.

    Attributes:
        operation:   Name of the protected operation (e.g. ``AddEvent``).
        retry_after: Seconds until the next probe becomes eligible.
    """

    status_code = 503

    def __init__(self, operation: str, retry_after: float) -> None:
        self.operation = operation
        self.retry_after = max(0.0, retry_after)
        self.error = f"{operation} service temporarily unavailable. Please try again later."
        super().__init__(self.error)


class ErrorResponse(BaseModel):
    """JSON error body: ``{"error": str, "detail": str}``.

    ``detail`` is omitted for breaker rejections, which carry no upstream
    reason.
    """

    error: str
    detail: str | None = None

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorResponse":
        """Create from an exception.

        Never leaks internal details for unhandled exceptions.
        """
        if isinstance(exc, ServiceDegradedError):
            return cls(error=exc.error)
        if isinstance(exc, EventGatewayError):
            return cls(error=exc.error, detail=str(exc))
        # Unknown exception, no internals in the body
        return cls(error="An internal error occurred")

    def to_content(self) -> dict:
        return self.model_dump(exclude_none=True)
