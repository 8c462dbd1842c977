"""Multi-segment trend orchestration.

Schedules the fetches behind a segment grid and wires their results into
the pure ranking, planning, and assembly functions:

1. Rank stage: the column and row segments are resolved concurrently.
   Each needs its own dimensional fetch unless it is unused or has
   custom values.
2. Combination stage: every grid cell's series is fetched concurrently.
   A failed cell records its error; its siblings are unaffected.
3. Assembly: the grid is built with a single global line ranking.

Every fetch goes through a QueryCache keyed by its exact filter tuple, so
repeated or overlapping requests are served once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from segment_trends._internal.query_cache import QueryCache
from segment_trends._internal.rate_limiter import AsyncRateLimiter
from segment_trends._internal.services.combinations import (
    apply_combination,
    generate_combinations,
)
from segment_trends._internal.services.derived_metrics import get_metric
from segment_trends._internal.services.grid import GridAssembler
from segment_trends._internal.services.ranking import resolve_segment
from segment_trends.types import (
    CellResult,
    DimensionalPoint,
    DimensionalTimeSeriesResult,
    Grid,
    MetricsFilters,
    MultiSegmentConfig,
    QueryCombination,
    SegmentSpec,
)

if TYPE_CHECKING:
    from segment_trends._internal.api_client import MetricsAPIClient

_logger = logging.getLogger(__name__)

GridCallback = Callable[[Grid], None]


def _transform_dimensional(
    payload: dict[str, Any] | list[Any],
    dimension: str,
    granularity: str,
) -> DimensionalTimeSeriesResult:
    """Parse a dimensional trend payload."""
    rows = payload.get("data", []) if isinstance(payload, dict) else payload
    return DimensionalTimeSeriesResult(
        points=[DimensionalPoint.from_api(row) for row in rows or []],
        dimension=dimension,
        granularity=granularity,
    )


class SegmentTrendService:
    """Fetches and assembles segment grids.

    Example:
        ```python
        service = SegmentTrendService(api_client)
        grid = await service.multi_segment_trend(
            MultiSegmentConfig(
                line=SegmentSpec("city", top_n=3),
                column=SegmentSpec("vehicle_category", top_n=2),
                filters=filters,
                metric="conversion",
                is_cumulative=True,
            )
        )
        ```
    """

    def __init__(
        self,
        api_client: MetricsAPIClient,
        *,
        max_concurrent: int = 10,
        cache: QueryCache | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            api_client: Async client for the metrics backend.
            max_concurrent: Maximum fetches in flight at once.
            cache: Shared query cache. A private one is created if omitted.
        """
        self._api_client = api_client
        self._limiter = AsyncRateLimiter(max_concurrent)
        self._cache = cache if cache is not None else QueryCache()
        self._active: MultiSegmentConfig | None = None
        self._latest: Grid | None = None

    @property
    def latest(self) -> Grid | None:
        """The most recent grid produced by refresh() for the active config."""
        return self._latest

    @property
    def active_config(self) -> MultiSegmentConfig | None:
        return self._active

    def clear_cache(self) -> None:
        """Drop every cached fetch."""
        self._cache.clear()

    async def fetch_trend(
        self,
        dimension: str,
        granularity: str,
        filters: MetricsFilters,
    ) -> DimensionalTimeSeriesResult:
        """Fetch one dimensional series, served from cache when possible."""
        key = ("trend", dimension, granularity, filters.cache_key())

        async def fetch() -> DimensionalTimeSeriesResult:
            async with self._limiter.acquire():
                payload = await self._api_client.dimensional_time_series(
                    dimension, granularity, filters
                )
            return _transform_dimensional(payload, dimension, granularity)

        return await self._cache.get_or_fetch(key, fetch)

    async def resolve_segment(
        self,
        spec: SegmentSpec,
        granularity: str,
        filters: MetricsFilters,
    ) -> list[str]:
        """Resolve one segment axis to its ordered values.

        Unused axes and axes with custom values are resolved without any
        fetch.
        """
        if spec.is_none or spec.has_custom_values:
            return resolve_segment(spec)
        trend = await self.fetch_trend(spec.dimension, granularity, filters)
        return resolve_segment(spec, trend.points)

    async def plan(self, config: MultiSegmentConfig) -> list[QueryCombination]:
        """Run the rank stage and return the grid's query plan."""
        column_values, row_values = await asyncio.gather(
            self.resolve_segment(config.column, config.granularity, config.filters),
            self.resolve_segment(config.row, config.granularity, config.filters),
        )
        _logger.debug(
            "Resolved columns %s and rows %s", column_values, row_values
        )
        return generate_combinations(
            column_values,
            row_values,
            column_is_none=config.column.is_none,
            row_is_none=config.row.is_none,
        )

    async def _fetch_cell(
        self,
        config: MultiSegmentConfig,
        combination: QueryCombination,
    ) -> CellResult:
        try:
            filters = apply_combination(
                config.filters,
                combination,
                column_dimension=config.column.dimension,
                row_dimension=config.row.dimension,
            )
            trend = await self.fetch_trend(
                config.line.dimension, config.granularity, filters
            )
        except Exception as e:
            _logger.warning(
                "Cell (%s, %s) failed: %s",
                combination.row_value,
                combination.column_value,
                e,
            )
            return CellResult(combination=combination, error=str(e))
        return CellResult(combination=combination, points=tuple(trend.points))

    async def _run(
        self,
        config: MultiSegmentConfig,
        on_update: GridCallback | None,
        is_current: Callable[[], bool],
    ) -> Grid | None:
        assembler = GridAssembler(
            config.line,
            get_metric(config.metric),
            is_cumulative=config.is_cumulative,
            row_dimension=config.row.dimension,
        )

        combinations = await self.plan(config)
        if not is_current():
            return None
        if not combinations:
            return assembler.assemble([], [])

        pending = set(combinations)
        results: list[CellResult] = []
        if on_update is not None:
            on_update(assembler.assemble(combinations, results, pending=pending))

        tasks = [
            asyncio.ensure_future(self._fetch_cell(config, c)) for c in combinations
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                result = await next_done
                results.append(result)
                pending.discard(result.combination)
                if on_update is not None and pending and is_current():
                    on_update(
                        assembler.assemble(combinations, results, pending=pending)
                    )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if not is_current():
            return None
        return assembler.assemble(combinations, results)

    async def multi_segment_trend(
        self,
        config: MultiSegmentConfig,
        *,
        on_update: GridCallback | None = None,
    ) -> Grid:
        """Build a segment grid.

        Args:
            config: Segments, filters, metric, and mode.
            on_update: Called with a partial grid once the plan is known
                and again as each cell completes; unfinished cells are
                marked loading.

        Returns:
            The assembled grid. Failed cells carry their error.

        Raises:
            ValueError: If config.metric is unknown.
            SegmentTrendsError: If a rank-stage fetch fails.
        """
        grid = await self._run(config, on_update, lambda: True)
        if grid is None:
            raise RuntimeError("Grid build was discarded without a newer config")
        return grid

    async def refresh(
        self,
        config: MultiSegmentConfig,
        *,
        on_update: GridCallback | None = None,
    ) -> Grid | None:
        """Make config the active grid and build it.

        If another config becomes active while this one is in flight, its
        results are discarded on arrival: nothing further is reported for
        it and None is returned.

        Returns:
            The grid, or None if it went stale.
        """
        self._active = config

        def is_current() -> bool:
            return self._active == config

        grid = await self._run(config, on_update, is_current)
        if grid is None:
            _logger.debug("Discarded stale grid for %s", config)
            return None
        self._latest = grid
        return grid
