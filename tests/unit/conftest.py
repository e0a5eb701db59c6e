"""Shared fixtures for unit tests.

Time never really passes in these tests: the breaker reads a
``FakeClock`` and the retry client sleeps through a ``SleepRecorder``.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

UPSTREAM_URL = "http://event.com"


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def mock_upstream(handler: Callable) -> httpx.AsyncClient:
    """AsyncClient pointed at the event service, answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=UPSTREAM_URL)


@pytest.fixture
def make_client() -> Callable[[Callable], httpx.AsyncClient]:
    return mock_upstream


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()
