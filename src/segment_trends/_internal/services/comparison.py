"""Period comparison and metadata queries.

Wraps the comparison, time-series, filters and grouped endpoints and
transforms their camelCase payloads into typed results. Nothing here is
cached: these views are refreshed by the caller and should read fresh
data.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from segment_trends._internal.date_utils import build_shifted_period
from segment_trends._internal.services.derived_metrics import compute_change, round2
from segment_trends.types import (
    ComparisonPeriod,
    ComparisonResult,
    FilterOptions,
    GroupedMetricsResult,
    MetricChange,
    MetricsFilters,
    RawCounterPoint,
    TimeSeriesResult,
)

if TYPE_CHECKING:
    from segment_trends._internal.api_client import MetricsAPIClient

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    """'completedRides' -> 'completed_rides'."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _totals(data: dict[str, Any] | None) -> dict[str, float]:
    totals: dict[str, float] = {}
    for key, value in (data or {}).items():
        try:
            totals[_snake(key)] = float(value or 0)
        except (TypeError, ValueError):
            continue
    return totals


def _transform_comparison(
    raw: dict[str, Any],
    period: ComparisonPeriod,
) -> ComparisonResult:
    """Transform a comparison payload into a ComparisonResult.

    Server-reported changes are kept when present; any metric without one
    has its change recomputed from the two totals.
    """
    current = _totals(raw.get("current"))
    previous = _totals(raw.get("previous"))

    reported = {_snake(k): v for k, v in (raw.get("change") or {}).items()}
    change: dict[str, MetricChange] = {}
    for metric in dict.fromkeys([*current, *previous]):
        entry = reported.get(metric)
        if isinstance(entry, dict) and "percent" in entry:
            change[metric] = MetricChange(
                absolute=round2(float(entry.get("absolute") or 0)),
                percent=round2(float(entry.get("percent") or 0)),
            )
        else:
            change[metric] = compute_change(
                current.get(metric, 0.0), previous.get(metric, 0.0)
            )

    return ComparisonResult(
        current=current,
        previous=previous,
        change=change,
        period=period,
    )


def transform_time_series(
    raw: dict[str, Any],
    granularity: str,
    filters: MetricsFilters,
) -> TimeSeriesResult:
    points = [RawCounterPoint.from_api(row) for row in raw.get("data") or []]
    points.sort(key=lambda p: p.timestamp)
    return TimeSeriesResult(points=points, granularity=granularity, filters=filters)


def _transform_filter_options(raw: dict[str, Any]) -> FilterOptions:
    date_range = raw.get("dateRange") or {}
    return FilterOptions(
        cities=list(raw.get("cities") or []),
        merchants=[
            {"id": str(m.get("id", "")), "name": str(m.get("name", ""))}
            for m in raw.get("merchants") or []
        ],
        flow_types=list(raw.get("flowTypes") or []),
        trip_tags=list(raw.get("tripTags") or []),
        service_tiers=list(raw.get("serviceTiers") or []),
        date_min=date_range.get("min"),
        date_max=date_range.get("max"),
    )


def _transform_grouped(raw: dict[str, Any], group_by: str) -> GroupedMetricsResult:
    rows = [
        {_snake(k): v for k, v in row.items()} for row in raw.get("data") or []
    ]
    return GroupedMetricsResult(group_by=raw.get("groupBy", group_by), rows=rows)


class ComparisonService:
    """Period comparison, plain time series and filter metadata.

    Example:
        ```python
        service = ComparisonService(api_client)
        result = await service.compare(
            "2025-01-10 00:00:00", "2025-01-11 00:00:00", filters
        )
        result.change["bookings"].percent
        ```
    """

    def __init__(self, api_client: MetricsAPIClient) -> None:
        """Initialize the service.

        Args:
            api_client: Async client for the metrics backend.
        """
        self._api_client = api_client

    async def compare(
        self,
        date_from: str,
        date_to: str,
        filters: MetricsFilters | None = None,
    ) -> ComparisonResult:
        """Compare [date_from, date_to] with the equal-length window before it.

        Raises:
            InvalidPeriodError: If the window is malformed. No request is
                sent in that case.
        """
        period = build_shifted_period(date_from, date_to)
        raw = await self._api_client.comparison(period, filters or MetricsFilters())
        return _transform_comparison(raw, period)

    async def time_series(
        self,
        filters: MetricsFilters,
        granularity: str = "day",
    ) -> TimeSeriesResult:
        """Fetch the undimensioned series, sorted by bucket."""
        raw = await self._api_client.time_series(filters, granularity)
        return transform_time_series(raw, granularity, filters)

    async def filter_options(self) -> FilterOptions:
        """Fetch the values available for each filter."""
        return _transform_filter_options(await self._api_client.filter_options())

    async def grouped(
        self,
        group_by: str,
        filters: MetricsFilters | None = None,
    ) -> GroupedMetricsResult:
        """Fetch totals grouped by one column, keys in snake_case."""
        raw = await self._api_client.grouped(group_by, filters or MetricsFilters())
        return _transform_grouped(raw, group_by)
