"""Session-scoped cache for metric query results.

Results are keyed by a tuple identifying the exact query (endpoint,
dimension, granularity and filter tuple). Concurrent requests for the
same key share a single in-flight fetch instead of issuing duplicates.
Failed fetches are not cached.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryCache:
    """Async de-duplicating result cache.

    Example:
        ```python
        cache = QueryCache()
        key = ("trend", "city", "day", filters.cache_key())
        result = await cache.get_or_fetch(key, lambda: client.fetch(...))
        ```
    """

    def __init__(self) -> None:
        self._results: dict[Hashable, Any] = {}
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}
        self._generation = 0

    async def get_or_fetch(
        self,
        key: Hashable,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached result for key, fetching it at most once.

        Args:
            key: Hashable query identity.
            fetch: Zero-argument coroutine factory producing the result.

        Returns:
            The cached or freshly fetched result.

        Raises:
            Exception: Whatever fetch raises; the failure is not cached.
        """
        if key in self._results:
            _logger.debug("Cache hit: %s", key)
            cached: T = self._results[key]
            return cached

        task = self._in_flight.get(key)
        if task is None:
            _logger.debug("Cache miss: %s", key)
            task = asyncio.ensure_future(fetch())
            self._in_flight[key] = task
            task.add_done_callback(
                functools.partial(self._on_done, key, self._generation)
            )
        else:
            _logger.debug("Joining in-flight fetch: %s", key)

        # Shielded so one cancelled waiter doesn't cancel the shared fetch
        result: T = await asyncio.shield(task)
        return result

    def _on_done(self, key: Hashable, generation: int, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled() or task.exception() is not None:
            return
        if generation == self._generation:
            self._results[key] = task.result()

    def get(self, key: Hashable) -> Any | None:
        """Return a cached result without fetching, or None."""
        return self._results.get(key)

    def clear(self) -> None:
        """Drop all cached results.

        Fetches already in flight complete for their waiters but are
        not stored.
        """
        self._results.clear()
        self._in_flight.clear()
        self._generation += 1

    def __contains__(self, key: object) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)
