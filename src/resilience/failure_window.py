"""Sliding-window failure tracker.

Keeps the monotonic timestamps (milliseconds) of recent failed calls and
answers how many fall inside the trailing window.  A failure exactly one
window old has already aged out.
"""

from __future__ import annotations

from collections import deque

FAILURE_WINDOW_MS = 30_000
FAILURE_THRESHOLD = 3


class FailureWindow:
    """Failure timestamps inside a trailing time window."""

    def __init__(self, window_ms: float = FAILURE_WINDOW_MS) -> None:
        self.window_ms = window_ms
        self._timestamps: deque[float] = deque()

    def record(self, timestamp: float) -> None:
        self._timestamps.append(timestamp)

    def prune(self, now: float) -> None:
        """Drop every timestamp with ``now - ts >= window_ms``."""
        while self._timestamps and now - self._timestamps[0] >= self.window_ms:
            self._timestamps.popleft()

    def count_within_window(self, now: float) -> int:
        self.prune(now)
        return len(self._timestamps)

    def clear(self) -> None:
        self._timestamps.clear()

    def __len__(self) -> int:
        return len(self._timestamps)
