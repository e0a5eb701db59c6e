"""Two-state circuit breaker with periodic single-request probing.

    NORMAL    →  (3 failures inside 30s)      →  DEGRADED
    DEGRADED  →  (probe succeeds)             →  NORMAL
    DEGRADED  →  (probe fails)                →  DEGRADED, probe clock reset

While DEGRADED, a request becomes the probe once 15s have passed since
the last probe (or since tripping); every other request is rejected
without contacting upstream.  A probe is a bare single attempt, a normal
request goes through the retrying client.

State lives in an explicit ``BreakerState`` handed to the breaker at
construction.  Updates are lock-free: no read-modify-write of the state
spans an ``await``, so on the event loop each transition is atomic.
Several requests may still be classified as probes before the first
probe settles; that is tolerated, probes are plain health checks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from src.core.errors import EventGatewayError, ServiceDegradedError
from src.resilience.failure_window import FAILURE_THRESHOLD, FailureWindow
from src.resilience.retry import RetryingClient, parse_json

logger = logging.getLogger(__name__)

PROBE_INTERVAL_MS = 15_000


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000


class BreakerMode(str, Enum):
    """Breaker states."""

    NORMAL = "normal"
    DEGRADED = "degraded"


class CallMode(str, Enum):
    """How an admitted request reaches upstream."""

    RETRYING = "retrying"
    PROBE = "probe"


@dataclass
class BreakerState:
    """Mutable breaker state, one instance per protected operation.

    Attributes:
        mode:               Current breaker state.
        last_probe_time_ms: Time of the last probe (or of tripping); ``None``
                            until the breaker first degrades.
        failures:           Recent failure timestamps.
    """

    mode: BreakerMode = BreakerMode.NORMAL
    last_probe_time_ms: float | None = None
    failures: FailureWindow = field(default_factory=FailureWindow)


class CircuitBreaker:
    """Guards one write operation against a failing upstream.

    Args:
        name:         Operation name used in rejections and logs.
        retry_client: Transport used for normal and probe attempts.
        state:        Injected breaker state (a fresh one if omitted).
        clock:        Millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        retry_client: RetryingClient,
        state: BreakerState | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.name = name
        self.failure_threshold = FAILURE_THRESHOLD
        self.probe_interval_ms = PROBE_INTERVAL_MS

        self._retry = retry_client
        self._state = state if state is not None else BreakerState()
        self._clock = clock

        # Metrics
        self.total_calls = 0
        self.total_failures = 0
        self.total_rejections = 0
        self.total_successes = 0
        self.total_probes = 0

    # ── Public properties ────────────────────────────────────────────

    @property
    def state(self) -> BreakerState:
        return self._state

    @property
    def mode(self) -> BreakerMode:
        return self._state.mode

    # ── Decision and bookkeeping ─────────────────────────────────────

    def admit(self) -> CallMode:
        """Classify the next request; raise if it must be rejected.

        Raises:
            ServiceDegradedError: DEGRADED and the probe interval has not
                elapsed since the last probe.
        """
        now = self._clock()
        state = self._state
        state.failures.prune(now)

        if state.mode is BreakerMode.NORMAL:
            self.total_calls += 1
            return CallMode.RETRYING

        since_probe = now - (state.last_probe_time_ms or 0.0)
        if since_probe < self.probe_interval_ms:
            self.total_rejections += 1
            raise ServiceDegradedError(self.name, (self.probe_interval_ms - since_probe) / 1000)

        self.total_calls += 1
        self.total_probes += 1
        return CallMode.PROBE

    def on_success(self, mode: CallMode) -> None:
        """Record a successful call; any success while DEGRADED recovers."""
        self.total_successes += 1
        self._state.failures.clear()
        if self._state.mode is BreakerMode.DEGRADED:
            self._state.mode = BreakerMode.NORMAL
            if mode is CallMode.PROBE:
                logger.info("%s probe successful — exiting degraded mode", self.name)
            else:
                logger.info("%s in-flight call succeeded — exiting degraded mode", self.name)

    def on_failure(self, mode: CallMode) -> None:
        """Record a failed call, possibly entering DEGRADED."""
        now = self._clock()
        state = self._state
        self.total_failures += 1
        state.failures.record(now)

        if state.mode is BreakerMode.NORMAL and state.failures.count_within_window(now) >= self.failure_threshold:
            state.mode = BreakerMode.DEGRADED
            state.last_probe_time_ms = now
            logger.warning(
                "%s entered degraded mode after %d failures in %.0fs",
                self.name,
                len(state.failures),
                state.failures.window_ms / 1000,
            )

        if mode is CallMode.PROBE:
            state.last_probe_time_ms = now
            logger.warning("%s probe failed — remaining in degraded mode", self.name)

    # ── Core call wrapper ────────────────────────────────────────────

    async def call(
        self,
        request: httpx.Request,
        parse: Callable[[httpx.Response], Any] = parse_json,
        mode: CallMode | None = None,
    ) -> Any:
        """Send *request* under breaker protection and return the parsed body.

        A call succeeds only if *parse* accepts the response, so a 4xx or
        malformed body counts as a failure sample just like a 5xx.

        Callers that must reject before building the request pass the
        *mode* they already got from ``admit()``.

        Raises:
            ServiceDegradedError: Rejected without contacting upstream.
            UpstreamUnavailableError: Transient failure after the retry bound
                (or after the single probe attempt).
            UpstreamResponseError: Non-transient upstream answer.
        """
        if mode is None:
            mode = self.admit()
        try:
            if mode is CallMode.PROBE:
                response = await self._retry.call_once(request)
            else:
                response = await self._retry.call(request)
            payload = parse(response)
        except EventGatewayError as exc:
            logger.warning("%s call failed (%s): %s", self.name, mode.value, exc)
            self.on_failure(mode)
            raise

        self.on_success(mode)
        return payload

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot for health/metrics."""
        return {
            "name": self.name,
            "mode": self._state.mode.value,
            "failures_in_window": self._state.failures.count_within_window(self._clock()),
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
            "total_rejections": self.total_rejections,
            "total_successes": self.total_successes,
            "total_probes": self.total_probes,
        }
