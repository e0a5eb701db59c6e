"""Fan-out aggregator — concurrent per-identifier fetches with failure isolation.

All calls start together and the aggregate waits for every one of them
to settle.  A failed item never fails the whole result; it is kept as a
failed ``ItemResult`` at its position.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")


@dataclass(frozen=True)
class ItemResult(Generic[K]):
    """Outcome for one identifier.

    ``ok`` separates a failed fetch from a payload that is legitimately
    ``None``.
    """

    key: K
    ok: bool
    value: Any = None
    error: str | None = None


class FanOutAggregator(Generic[K]):
    """Fetch many items concurrently through a single-item coroutine.

    Args:
        fetch: Coroutine returning the payload for one identifier.
        label: Item kind used in failure logs (e.g. ``event``).
    """

    def __init__(self, fetch: Callable[[K], Awaitable[Any]], label: str = "item") -> None:
        self._fetch = fetch
        self._label = label

    async def fetch_all(self, keys: Sequence[K]) -> list[ItemResult[K]]:
        """Return one ``ItemResult`` per key, in input order."""
        return list(await asyncio.gather(*(self._fetch_one(key) for key in keys)))

    async def _fetch_one(self, key: K) -> ItemResult[K]:
        try:
            value = await self._fetch(key)
        except Exception as exc:
            logger.error("Failed to fetch %s %s: %s", self._label, key, exc)
            return ItemResult(key=key, ok=False, error=str(exc) or type(exc).__name__)
        return ItemResult(key=key, ok=True, value=value)


def payloads(results: Sequence[ItemResult]) -> list[Any]:
    """Wire form: the payload of each item, ``None`` where it failed."""
    return [r.value if r.ok else None for r in results]
