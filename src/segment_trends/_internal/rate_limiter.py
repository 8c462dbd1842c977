"""Concurrency limiter for in-flight metric fetches.

A grid of R x C cells issues up to R x C fetches at once. The limiter
bounds how many of them are actually on the wire at the same time.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class AsyncRateLimiter:
    """Semaphore-based limiter for concurrent coroutines.

    Attributes:
        max_concurrent: Maximum number of fetches allowed in flight.

    Example:
        ```python
        limiter = AsyncRateLimiter(max_concurrent=10)

        async def fetch_cell(filters: MetricsFilters) -> dict:
            async with limiter.acquire():
                return await client.dimensional_time_series("city", "day", filters)
        ```
    """

    def __init__(self, max_concurrent: int = 10) -> None:
        """Initialize the limiter.

        Args:
            max_concurrent: Maximum number of concurrent fetches.

        Raises:
            ValueError: If max_concurrent is not positive.
        """
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")

        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0

    @property
    def max_concurrent(self) -> int:
        """Maximum number of concurrent fetches allowed."""
        return self._max_concurrent

    @property
    def in_flight(self) -> int:
        """Number of slots currently held."""
        return self._in_flight

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        """Hold a slot for the duration of the block.

        The slot is released on exit, including on exception or
        cancellation.
        """
        async with self._semaphore:
            self._in_flight += 1
            try:
                yield
            finally:
                self._in_flight -= 1
