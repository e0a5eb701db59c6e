"""EventServiceClient — HTTP access to the upstream event service.

Holds the upstream route table and one pooled ``httpx.AsyncClient``.
Each gateway operation picks its own failure policy:

    get_users          bare single attempt
    add_event          circuit breaker (retrying, or bare probe)
    get_events         bounded retry
    get_user           bare single attempt
    get_event          bare single attempt
    get_user_events    user lookup, then concurrent fan-out of get_event
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from src.core.config import Settings
from src.core.errors import UpstreamResponseError
from src.resilience.circuit_breaker import BreakerState, CallMode, CircuitBreaker, monotonic_ms
from src.resilience.fan_out import FanOutAggregator, ItemResult
from src.resilience.retry import RetryingClient, SleepFn, parse_json

logger = logging.getLogger(__name__)

# ── Route table ─────────────────────────────────────────────────────────

ROUTES: dict[str, str] = {
    "get_users": "/getUsers",
    "add_event": "/addEvent",
    "get_events": "/getEvents",
    "get_user": "/getUserById/{user_id}",
    "get_event": "/getEventById/{event_id}",
}


def _path(route: str, **params: Any) -> str:
    """Fill a route template; each parameter becomes one quoted path segment."""
    return ROUTES[route].format(**{k: quote(str(v), safe="") for k, v in params.items()})


def epoch_ms() -> int:
    return int(time.time() * 1000)


def build_event_payload(body: dict[str, Any], event_id: int) -> dict[str, Any]:
    """Merge the server-assigned ``id`` under the client body.

    A client-supplied ``id`` takes precedence.
    """
    return {"id": event_id, **body}


class EventServiceClient:
    """Gateway operations against the event service.

    Args:
        settings:      Application settings (upstream URL).
        breaker_state: Process-wide state for the ``AddEvent`` breaker.
        client:        Optional pre-built client (tests inject a
                       ``MockTransport``); its ``base_url`` must point at
                       the upstream.
        sleep:         Backoff sleep, forwarded to the retrying client.
        clock:         Millisecond clock for the breaker.
    """

    def __init__(
        self,
        settings: Settings,
        breaker_state: BreakerState | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFn | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=settings.EVENT_SERVICE_URL)
        self._retry = RetryingClient(self._client, sleep=sleep)
        self.add_event_breaker = CircuitBreaker(
            "AddEvent",
            self._retry,
            state=breaker_state,
            clock=clock,
        )
        self._events = FanOutAggregator(self.get_event, label="event")

    async def get_users(self) -> Any:
        request = self._retry.build_request("GET", ROUTES["get_users"])
        return parse_json(await self._retry.call_once(request))

    async def add_event(self, body: dict[str, Any], mode: CallMode | None = None) -> Any:
        """Submit an event through the ``AddEvent`` breaker."""
        payload = build_event_payload(body, epoch_ms())
        request = self._retry.build_request("POST", ROUTES["add_event"], json=payload)
        return await self.add_event_breaker.call(request, mode=mode)

    async def get_events(self) -> Any:
        request = self._retry.build_request("GET", ROUTES["get_events"])
        return parse_json(await self._retry.call(request))

    async def get_user(self, user_id: str) -> Any:
        request = self._retry.build_request("GET", _path("get_user", user_id=user_id))
        return parse_json(await self._retry.call_once(request))

    async def get_event(self, event_id: Any) -> Any:
        request = self._retry.build_request("GET", _path("get_event", event_id=event_id))
        return parse_json(await self._retry.call_once(request))

    async def get_user_events(self, user_id: str) -> list[ItemResult]:
        """Fetch every event of *user_id*; failed events stay as failed items.

        Raises:
            UpstreamResponseError: The user record has no ``events`` list.
        """
        user = await self.get_user(user_id)
        event_ids = user.get("events") if isinstance(user, dict) else None
        if not isinstance(event_ids, list):
            raise UpstreamResponseError(
                _path("get_user", user_id=user_id),
                "User record has no 'events' list",
            )
        logger.debug("Fanning out %d event fetches for user %s", len(event_ids), user_id)
        return await self._events.fetch_all(event_ids)

    async def close(self) -> None:
        """Close the pooled httpx client."""
        await self._client.aclose()
