"""Workspace facade for segment trend operations.

The Workspace class is the unified entry point. It resolves a backend
profile, scopes every query to the current session, and orchestrates
SegmentTrendService, LiveMetricsService and ComparisonService over one
shared API client and query cache.

Example:
    ```python
    async with Workspace() as ws:
        grid = await ws.segment_grid(
            SegmentSpec("city", top_n=3),
            column=SegmentSpec("vehicle_category", top_n=2),
            filters=MetricsFilters(
                date_from="2025-01-01 00:00:00", date_to="2025-01-07 23:59:59"
            ),
            metric="conversion",
            is_cumulative=True,
        )
        print(grid.df)
    ```
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from segment_trends._internal.api_client import MetricsAPIClient
from segment_trends._internal.config import ConfigManager, Credentials, EngineSettings
from segment_trends._internal.query_cache import QueryCache
from segment_trends._internal.services.comparison import ComparisonService
from segment_trends._internal.services.live_metrics import (
    DEFAULT_KPI_METRICS,
    LiveMetricsService,
    kpis,
    live_comparison,
)
from segment_trends._internal.services.segment_trend import (
    GridCallback,
    SegmentTrendService,
)
from segment_trends._internal.session import SessionContext, SessionStore
from segment_trends.types import (
    KPI,
    ComparisonResult,
    DimensionalTimeSeriesResult,
    FilterOptions,
    Grid,
    GroupedMetricsResult,
    LiveComparison,
    LiveWindows,
    MetricsFilters,
    MultiSegmentConfig,
    SegmentSpec,
    TimeSeriesResult,
)


class Workspace:
    """Unified entry point for segment trend operations.

    Every query's filters pass through the session store first, so a
    non-admin session only ever sees its own merchant and city unless
    the filters say otherwise.

    Examples:
        Rank the top cities:

        ```python
        async with Workspace(profile="staging") as ws:
            top = await ws.rank("city", top_n=5, filters=filters)
        ```

        Live KPIs:

        ```python
        async with Workspace() as ws:
            for kpi in await ws.kpis():
                print(kpi.label, kpi.value, kpi.change_vs_yesterday)
        ```
    """

    # =========================================================================
    # LIFECYCLE & CONSTRUCTION
    # =========================================================================

    def __init__(
        self,
        profile: str | None = None,
        *,
        # Dependency injection for testing
        _config_manager: ConfigManager | None = None,
        _api_client: MetricsAPIClient | None = None,
        _session_store: SessionStore | None = None,
    ) -> None:
        """Create a Workspace for a backend profile.

        Credentials are resolved in priority order:
        1. Environment variables (SEGTREND_BASE_URL, SEGTREND_TOKEN)
        2. Named profile from the config file
        3. Default profile from the config file

        Args:
            profile: Named profile to use.
            _config_manager: Injected ConfigManager for testing.
            _api_client: Injected MetricsAPIClient for testing.
            _session_store: Injected SessionStore for testing.

        Raises:
            ConfigError: If no credentials can be resolved or the session
                file is unreadable.
            ProfileNotFoundError: If the named profile doesn't exist.
        """
        self._config_manager = _config_manager or ConfigManager()
        self._credentials: Credentials = self._config_manager.resolve_credentials(
            profile
        )
        self._settings: EngineSettings = self._config_manager.resolve_settings()

        self._session_store = _session_store or SessionStore()
        self._session_store.load()

        self._api_client: MetricsAPIClient = _api_client or MetricsAPIClient(
            self._credentials,
            timeout=self._settings.timeout,
            max_retries=self._settings.max_retries,
        )
        self._cache = QueryCache()

        # Lazy-initialized services (None until first use)
        self._segment_trend: SegmentTrendService | None = None
        self._live_metrics: LiveMetricsService | None = None
        self._comparison: ComparisonService | None = None

    async def __aenter__(self) -> Workspace:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Close the HTTP client. Exceptions propagate after cleanup."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call more than once."""
        await self._api_client.aclose()

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    @property
    def _segment_trend_service(self) -> SegmentTrendService:
        if self._segment_trend is None:
            self._segment_trend = SegmentTrendService(
                self._api_client,
                max_concurrent=self._settings.max_concurrent,
                cache=self._cache,
            )
        return self._segment_trend

    @property
    def _live_metrics_service(self) -> LiveMetricsService:
        if self._live_metrics is None:
            self._live_metrics = LiveMetricsService(
                self._api_client, max_concurrent=self._settings.max_concurrent
            )
        return self._live_metrics

    @property
    def _comparison_service(self) -> ComparisonService:
        if self._comparison is None:
            self._comparison = ComparisonService(self._api_client)
        return self._comparison

    def _scoped(self, filters: MetricsFilters | None) -> MetricsFilters:
        return self._session_store.apply_to_filters(filters or MetricsFilters())

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def session(self) -> SessionContext | None:
        """The current session context, or None when logged out."""
        return self._session_store.current

    @property
    def latest_grid(self) -> Grid | None:
        """The last grid produced by refresh()."""
        if self._segment_trend is None:
            return None
        return self._segment_trend.latest

    def clear_cache(self) -> None:
        """Drop every cached trend fetch."""
        self._cache.clear()

    # =========================================================================
    # SEGMENT TRENDS
    # =========================================================================

    async def trend(
        self,
        dimension: str,
        *,
        granularity: str = "day",
        filters: MetricsFilters | None = None,
    ) -> DimensionalTimeSeriesResult:
        """Fetch one series per value of a dimension.

        Raises:
            SegmentTrendsError: If the request fails.
        """
        return await self._segment_trend_service.fetch_trend(
            dimension, granularity, self._scoped(filters)
        )

    async def rank(
        self,
        dimension: str,
        *,
        top_n: int | None = None,
        custom_values: Sequence[str] = (),
        granularity: str = "day",
        filters: MetricsFilters | None = None,
    ) -> list[str]:
        """Top values of a dimension by volume.

        Args:
            dimension: Dimension to rank.
            top_n: How many values to keep. Defaults to the configured
                default_top_n.
            custom_values: Explicit values; returned as-is without a fetch.
            granularity: Bucket size of the ranking fetch.
            filters: Filters; the session scope is applied on top.

        Raises:
            ValueError: If top_n is not positive or dimension is unknown.
        """
        spec = SegmentSpec(
            dimension=dimension,
            top_n=top_n if top_n is not None else self._settings.default_top_n,
            custom_values=tuple(custom_values),
        )
        return await self._segment_trend_service.resolve_segment(
            spec, granularity, self._scoped(filters)
        )

    def grid_config(
        self,
        line: SegmentSpec,
        *,
        column: SegmentSpec | None = None,
        row: SegmentSpec | None = None,
        filters: MetricsFilters | None = None,
        granularity: str = "day",
        metric: str = "searches",
        is_cumulative: bool = False,
    ) -> MultiSegmentConfig:
        """Build a session-scoped grid configuration.

        Raises:
            ValueError: If line is the unused 'none' segment.
        """
        return MultiSegmentConfig(
            line=line,
            column=column or SegmentSpec(),
            row=row or SegmentSpec(),
            filters=self._scoped(filters),
            granularity=granularity,
            metric=metric,
            is_cumulative=is_cumulative,
        )

    async def segment_grid(
        self,
        line: SegmentSpec,
        *,
        column: SegmentSpec | None = None,
        row: SegmentSpec | None = None,
        filters: MetricsFilters | None = None,
        granularity: str = "day",
        metric: str = "searches",
        is_cumulative: bool = False,
        on_update: GridCallback | None = None,
    ) -> Grid:
        """Build a grid of small-multiple charts.

        Args:
            line: Inner segment; one line per top value.
            column: Middle segment; one column per top value.
            row: Outer segment; one row per top value.
            filters: Base filters; the session scope is applied on top.
            granularity: 'hour' or 'day'.
            metric: Metric key, e.g. 'searches' or 'conversion'.
            is_cumulative: Plot running totals.
            on_update: Receives partial grids while cells load.

        Returns:
            The assembled grid. Cells whose fetch failed carry the error.

        Raises:
            ValueError: If metric is unknown.
            SegmentTrendsError: If ranking a column or row segment fails.
        """
        config = self.grid_config(
            line,
            column=column,
            row=row,
            filters=filters,
            granularity=granularity,
            metric=metric,
            is_cumulative=is_cumulative,
        )
        return await self._segment_trend_service.multi_segment_trend(
            config, on_update=on_update
        )

    async def refresh(
        self,
        config: MultiSegmentConfig,
        *,
        on_update: GridCallback | None = None,
    ) -> Grid | None:
        """Make config the active grid and build it.

        Returns None when a later refresh() superseded this one before it
        finished.
        """
        scoped = dataclasses.replace(config, filters=self._scoped(config.filters))
        return await self._segment_trend_service.refresh(scoped, on_update=on_update)

    # =========================================================================
    # LIVE METRICS
    # =========================================================================

    async def live_windows(
        self,
        *,
        filters: MetricsFilters | None = None,
        now: datetime | None = None,
    ) -> LiveWindows:
        """Fetch hourly series for today, yesterday and last week."""
        return await self._live_metrics_service.fetch_windows(
            self._scoped(filters), now
        )

    async def live(
        self,
        metric: str = "searches",
        *,
        is_cumulative: bool = False,
        filters: MetricsFilters | None = None,
        now: datetime | None = None,
    ) -> LiveComparison:
        """Today, yesterday and last week aligned by hour of day."""
        windows = await self.live_windows(filters=filters, now=now)
        return live_comparison(windows, metric, is_cumulative=is_cumulative)

    async def kpis(
        self,
        metrics: Sequence[str] = DEFAULT_KPI_METRICS,
        *,
        filters: MetricsFilters | None = None,
        now: datetime | None = None,
    ) -> list[KPI]:
        """Headline KPIs with day-over-day and week-over-week change."""
        windows = await self.live_windows(filters=filters, now=now)
        return kpis(windows, metrics)

    # =========================================================================
    # COMPARISON & METADATA
    # =========================================================================

    async def compare(
        self,
        date_from: str,
        date_to: str,
        *,
        filters: MetricsFilters | None = None,
    ) -> ComparisonResult:
        """Compare a window with the equal-length window before it.

        Raises:
            InvalidPeriodError: If the window is malformed.
        """
        return await self._comparison_service.compare(
            date_from, date_to, self._scoped(filters)
        )

    async def time_series(
        self,
        *,
        granularity: str = "day",
        filters: MetricsFilters | None = None,
    ) -> TimeSeriesResult:
        """Fetch the undimensioned series."""
        return await self._comparison_service.time_series(
            self._scoped(filters), granularity
        )

    async def filter_options(self) -> FilterOptions:
        """Values available for each filter."""
        return await self._comparison_service.filter_options()

    async def grouped(
        self,
        group_by: str,
        *,
        filters: MetricsFilters | None = None,
    ) -> GroupedMetricsResult:
        """Totals grouped by one column."""
        return await self._comparison_service.grouped(group_by, self._scoped(filters))
