"""Live dashboard metrics over fixed day windows.

Fetches hourly series for today, yesterday and the same day last week,
then derives headline KPIs and an hour-of-day comparison chart from them.
Results are not cached; live data changes by the minute.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from segment_trends._internal.date_utils import (
    build_fixed_windows,
    format_datetime,
    parse_datetime,
)
from segment_trends._internal.rate_limiter import AsyncRateLimiter
from segment_trends._internal.services.accumulator import (
    build_series,
    samples_for_metric,
    series_total,
)
from segment_trends._internal.services.comparison import transform_time_series
from segment_trends._internal.services.derived_metrics import (
    MetricDefinition,
    get_metric,
    percent_change,
)
from segment_trends.types import (
    KPI,
    LiveComparison,
    LiveRow,
    LiveWindows,
    MetricsFilters,
    RawCounterPoint,
    TimeSeriesResult,
    TimeWindow,
)

if TYPE_CHECKING:
    from segment_trends._internal.api_client import MetricsAPIClient

_logger = logging.getLogger(__name__)

WINDOW_COLORS: dict[str, str] = {
    "today": "#3b82f6",
    "yesterday": "#f59e0b",
    "last_week": "#8b5cf6",
}

DEFAULT_KPI_METRICS: tuple[str, ...] = (
    "searches",
    "bookings",
    "completed_rides",
    "conversion",
    "cancellation_rate",
    "earnings",
)


def hour_label(timestamp: str) -> str:
    """'2025-01-10 05:00:00' -> '05:00'."""
    return parse_datetime(timestamp).strftime("%H:00")


def _sorted_points(result: TimeSeriesResult) -> list[RawCounterPoint]:
    return sorted(result.points, key=lambda p: p.timestamp)


def _until_hour(points: Sequence[RawCounterPoint], hour: int) -> list[RawCounterPoint]:
    return [p for p in points if parse_datetime(p.timestamp).hour <= hour]


def _total(points: Sequence[RawCounterPoint], metric: MetricDefinition) -> float:
    return series_total(samples_for_metric(points, metric), is_rate=metric.is_rate)


def live_comparison(
    windows: LiveWindows,
    metric_key: str,
    *,
    is_cumulative: bool = False,
) -> LiveComparison:
    """Align the three windows by hour of day.

    An hour missing from a window is None in that column, so today's line
    stops at the current hour instead of dropping to zero.

    Legend totals cover each whole window. Rate totals are the ratio of
    summed numerators and denominators.

    Raises:
        ValueError: If metric_key is unknown.
    """
    metric = get_metric(metric_key)
    by_label: dict[str, dict[str, float]] = {}
    totals: dict[str, float] = {}
    for label, result in windows.series().items():
        points = _sorted_points(result)
        series = build_series(points, metric, is_cumulative=is_cumulative)
        by_label[label] = {hour_label(p.timestamp): p.value for p in series}
        totals[label] = _total(points, metric)

    hours = sorted({hour for values in by_label.values() for hour in values})
    rows = [
        LiveRow(
            hour=hour,
            today=by_label["today"].get(hour),
            yesterday=by_label["yesterday"].get(hour),
            last_week=by_label["last_week"].get(hour),
        )
        for hour in hours
    ]
    return LiveComparison(
        metric=metric.key,
        is_cumulative=is_cumulative,
        rows=rows,
        totals=totals,
        colors=dict(WINDOW_COLORS),
    )


def kpis(
    windows: LiveWindows,
    metrics: Sequence[str] = DEFAULT_KPI_METRICS,
) -> list[KPI]:
    """Headline KPIs for today.

    Each KPI's value is today's total so far. Its changes compare that
    against yesterday and last week cut at the same hour, so a morning
    reading is not measured against a full day. A change is None when
    the comparison window returned no data at all.

    Raises:
        ValueError: If any metric key is unknown.
    """
    cutoff = parse_datetime(windows.as_of).hour
    today = _until_hour(_sorted_points(windows.today), cutoff)
    yesterday = _until_hour(_sorted_points(windows.yesterday), cutoff)
    last_week = _until_hour(_sorted_points(windows.last_week), cutoff)

    results: list[KPI] = []
    for key in metrics:
        metric = get_metric(key)
        value = _total(today, metric)
        results.append(
            KPI(
                key=metric.key,
                label=metric.label,
                value=value,
                change_vs_yesterday=(
                    percent_change(value, _total(yesterday, metric))
                    if windows.yesterday.points
                    else None
                ),
                change_vs_last_week=(
                    percent_change(value, _total(last_week, metric))
                    if windows.last_week.points
                    else None
                ),
                trend_series=build_series(today, metric, is_cumulative=False),
                is_negative=metric.is_negative,
            )
        )
    return results


class LiveMetricsService:
    """Fetches the fixed live windows.

    Example:
        ```python
        service = LiveMetricsService(api_client)
        windows = await service.fetch_windows(filters)
        for kpi in kpis(windows):
            print(kpi.label, kpi.value, kpi.change_vs_yesterday)
        ```
    """

    def __init__(
        self,
        api_client: MetricsAPIClient,
        *,
        max_concurrent: int = 10,
    ) -> None:
        self._api_client = api_client
        self._limiter = AsyncRateLimiter(max_concurrent)

    async def _fetch_window(
        self,
        window: TimeWindow,
        filters: MetricsFilters,
    ) -> TimeSeriesResult:
        scoped = filters.replace(date_from=window.date_from, date_to=window.date_to)
        async with self._limiter.acquire():
            raw = await self._api_client.time_series(scoped, "hour")
        _logger.debug(
            "Fetched %s window: %d rows", window.label, len(raw.get("data") or [])
        )
        return transform_time_series(raw, "hour", scoped)

    async def fetch_windows(
        self,
        filters: MetricsFilters | None = None,
        now: datetime | None = None,
    ) -> LiveWindows:
        """Fetch hourly series for today, yesterday and last week concurrently.

        Any date range on filters is replaced by each window's own.

        Args:
            filters: Dimension filters.
            now: Reference time. Defaults to the current local time.
        """
        reference = now or datetime.now()
        fixed = build_fixed_windows(reference)
        base = filters or MetricsFilters()
        today, yesterday, last_week = await asyncio.gather(
            *(self._fetch_window(w, base) for w in fixed.windows)
        )
        return LiveWindows(
            windows=fixed,
            today=today,
            yesterday=yesterday,
            last_week=last_week,
            as_of=format_datetime(reference),
        )

    async def live_comparison(
        self,
        metric_key: str,
        filters: MetricsFilters | None = None,
        *,
        is_cumulative: bool = False,
        now: datetime | None = None,
    ) -> LiveComparison:
        """Fetch the windows and align them by hour of day."""
        windows = await self.fetch_windows(filters, now)
        return live_comparison(windows, metric_key, is_cumulative=is_cumulative)

    async def kpis(
        self,
        filters: MetricsFilters | None = None,
        metrics: Sequence[str] = DEFAULT_KPI_METRICS,
        *,
        now: datetime | None = None,
    ) -> list[KPI]:
        """Fetch the windows and compute headline KPIs."""
        windows = await self.fetch_windows(filters, now)
        return kpis(windows, metrics)
