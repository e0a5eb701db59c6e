"""Bounded retry client — linear backoff over a pooled ``httpx.AsyncClient``.

One logical outbound call is split into three steps that can be used
and tested on their own:

    build_request()   payload construction
    call()/call_once  transport with failure classification
    parse_json()      response parsing

An attempt fails when the transport raises (connect error, timeout,
protocol error) or the upstream answers with a status >= 500.  Anything
below 500 is a final answer and is never retried, and so is a body
that cannot be decoded (``httpx.DecodingError``).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.core.errors import UpstreamResponseError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 0.5

SleepFn = Callable[[float], Awaitable[None]]


class RetryingClient:
    """Sends requests to the event service with bounded linear-backoff retry.

    Args:
        client: Pooled client whose ``base_url`` points at the upstream.
        sleep:  Coroutine used between attempts (``asyncio.sleep`` unless a
                test injects a recorder).
    """

    def __init__(self, client: httpx.AsyncClient, sleep: SleepFn | None = None) -> None:
        self._client = client
        self._sleep = sleep or asyncio.sleep

    def build_request(self, method: str, path: str, *, json: Any = None) -> httpx.Request:
        """Build a request for *path* relative to the upstream base URL."""
        return self._client.build_request(method, path, json=json)

    async def call(
        self,
        request: httpx.Request,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY_SECONDS,
    ) -> httpx.Response:
        """Send *request*, retrying transient failures.

        Waits ``base_delay * k`` seconds between attempt ``k`` and ``k + 1``.

        Returns:
            The first response with a status below 500.

        Raises:
            UpstreamUnavailableError: The failure of the last attempt once
                all *max_attempts* have failed.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(1, max_attempts):
            try:
                return await self._attempt(request)
            except UpstreamUnavailableError as exc:
                await self._retry_delay(attempt, max_attempts, exc, base_delay)

        # Final attempt: its failure is the one surfaced to the caller
        return await self._attempt(request)

    async def call_once(self, request: httpx.Request) -> httpx.Response:
        """Bare mode: a single attempt, no backoff, same classification."""
        return await self._attempt(request)

    async def _attempt(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        try:
            response = await self._client.send(request)
        except httpx.TransportError as exc:
            raise UpstreamUnavailableError(path, str(exc) or type(exc).__name__) from exc
        except httpx.DecodingError as exc:
            raise UpstreamResponseError(path, f"Undecodable body: {exc}") from exc
        except httpx.RequestError as exc:
            raise UpstreamResponseError(path, str(exc) or type(exc).__name__) from exc

        if response.status_code >= 500:
            raise UpstreamUnavailableError(path, f"Server error: {response.status_code}")
        return response

    async def _retry_delay(
        self,
        attempt: int,
        attempts: int,
        exc: UpstreamUnavailableError,
        base_delay: float,
    ) -> None:
        """Log a warning and sleep for linear backoff."""
        delay = base_delay * attempt
        logger.warning(
            "%s for %s (attempt %d/%d), retrying in %.1fs",
            exc.detail,
            exc.path,
            attempt,
            attempts,
            delay,
        )
        await self._sleep(delay)


def parse_json(response: httpx.Response) -> Any:
    """Decode the JSON body of a final (< 500) response.

    Raises:
        UpstreamResponseError: On a 4xx status or a body that is not JSON.
    """
    path = response.request.url.path
    if response.is_client_error:
        raise UpstreamResponseError(path, response.reason_phrase, status_code=response.status_code)
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamResponseError(path, "Malformed JSON body") from exc
