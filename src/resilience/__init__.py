"""Resilience patterns for calls to the upstream event service.

Provides the bounded retry client, the sliding failure window, the
two-state probing circuit breaker guarding event submission, and the
fan-out aggregator used for per-user event lookups.
"""

from src.resilience.circuit_breaker import (
    BreakerMode,
    BreakerState,
    CallMode,
    CircuitBreaker,
)
from src.resilience.failure_window import FailureWindow
from src.resilience.fan_out import FanOutAggregator, ItemResult, payloads
from src.resilience.retry import RetryingClient, parse_json

__all__ = [
    "BreakerMode",
    "BreakerState",
    "CallMode",
    "CircuitBreaker",
    "FailureWindow",
    "FanOutAggregator",
    "ItemResult",
    "RetryingClient",
    "parse_json",
    "payloads",
]
