"""Result and input types for segment_trends operations.

All types are immutable frozen dataclasses with:
- JSON serialization via the `to_dict()` method (all values JSON-serializable)
- Lazy DataFrame conversion via the `df` property on tabular results
  (computed once, then cached)

Immutability makes filter sets and segment specs hashable, which is what
the query cache and stale-result detection key on. To change a value,
build a new instance (for filters, use `MetricsFilters.replace`).
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, get_args

import pandas as pd

from segment_trends._literal_types import SegmentDimension

# =============================================================================
# Filters
# =============================================================================

# Multi-valued filters: field name -> backend query parameter
LIST_FILTER_PARAMS: dict[str, str] = {
    "city": "city",
    "state": "state",
    "bap_merchant_id": "bapMerchantId",
    "bpp_merchant_id": "bppMerchantId",
    "merchant_id": "merchantId",
    "flow_type": "flowType",
    "trip_tag": "tripTag",
    "service_tier": "serviceTier",
    "user_os_type": "userOsType",
    "user_bundle_version": "userBundleVersion",
    "user_sdk_version": "userSdkVersion",
    "user_backend_app_version": "userBackendAppVersion",
    "dynamic_pricing_logic_version": "dynamicPricingLogicVersion",
    "pooling_logic_version": "poolingLogicVersion",
    "pooling_config_version": "poolingConfigVersion",
}

# Single-valued filters: field name -> backend query parameter
SCALAR_FILTER_PARAMS: dict[str, str] = {
    "date_from": "dateFrom",
    "date_to": "dateTo",
    "vehicle_category": "vehicleCategory",
    "vehicle_sub_category": "vehicleSubCategory",
}


@dataclass(frozen=True)
class MetricsFilters:
    """Immutable filter set sent with every metrics request.

    List-valued fields accept any iterable of strings and are normalized
    to tuples; empty collections are normalized to None so that two
    filter sets meaning the same query compare (and hash) equal.

    Example:
        ```python
        filters = MetricsFilters(
            date_from="2025-01-01 00:00:00",
            date_to="2025-01-07 23:59:59",
            city=["Bangalore"],
        )
        filters.to_params()
        # {'dateFrom': '2025-01-01 00:00:00', 'dateTo': '...', 'city': 'Bangalore'}
        ```
    """

    date_from: str | None = None
    """Inclusive start, 'YYYY-MM-DD HH:MM:SS'."""

    date_to: str | None = None
    """Inclusive end, 'YYYY-MM-DD HH:MM:SS'."""

    city: tuple[str, ...] | None = None
    state: tuple[str, ...] | None = None
    bap_merchant_id: tuple[str, ...] | None = None
    bpp_merchant_id: tuple[str, ...] | None = None
    merchant_id: tuple[str, ...] | None = None
    flow_type: tuple[str, ...] | None = None
    trip_tag: tuple[str, ...] | None = None
    service_tier: tuple[str, ...] | None = None
    user_os_type: tuple[str, ...] | None = None
    user_bundle_version: tuple[str, ...] | None = None
    user_sdk_version: tuple[str, ...] | None = None
    user_backend_app_version: tuple[str, ...] | None = None
    dynamic_pricing_logic_version: tuple[str, ...] | None = None
    pooling_logic_version: tuple[str, ...] | None = None
    pooling_config_version: tuple[str, ...] | None = None

    vehicle_category: str | None = None
    """Single vehicle category (Bike, Auto, Cab, ...)."""

    vehicle_sub_category: str | None = None

    def __post_init__(self) -> None:
        for name in LIST_FILTER_PARAMS:
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, str):
                value = (value,)
            normalized = tuple(str(v) for v in value)
            object.__setattr__(self, name, normalized or None)
        for name in SCALAR_FILTER_PARAMS:
            if getattr(self, name) == "":
                object.__setattr__(self, name, None)

    def to_params(self) -> dict[str, str]:
        """Render backend query parameters (camelCase, lists comma-joined)."""
        params: dict[str, str] = {}
        for name, param in SCALAR_FILTER_PARAMS.items():
            value = getattr(self, name)
            if value is not None:
                params[param] = value
        for name, param in LIST_FILTER_PARAMS.items():
            values = getattr(self, name)
            if values:
                params[param] = ",".join(values)
        return params

    def cache_key(self) -> tuple[tuple[str, Any], ...]:
        """Exact filter tuple, omitting unset fields."""
        return tuple(
            (f.name, getattr(self, f.name))
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        )

    def replace(self, **changes: Any) -> MetricsFilters:
        """Return a copy with the given fields overridden."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output (unset fields omitted)."""
        return {
            name: list(value) if isinstance(value, tuple) else value
            for name, value in self.cache_key()
        }


# =============================================================================
# Raw series points
# =============================================================================

COUNTER_FIELDS: tuple[str, ...] = (
    "searches",
    "search_for_quotes",
    "quotes_accepted",
    "bookings",
    "rides",
    "completed_rides",
    "cancelled_rides",
    "user_cancellations",
    "driver_cancellations",
    "earnings",
)

# Counter field -> accepted response keys, first match wins
_COUNTER_API_KEYS: dict[str, tuple[str, ...]] = {
    "searches": ("searches",),
    "search_for_quotes": ("searchForQuotes", "quotesRequested"),
    "quotes_accepted": ("quotesAccepted",),
    "bookings": ("bookings",),
    "rides": ("rides",),
    "completed_rides": ("completedRides",),
    "cancelled_rides": ("cancelledRides",),
    "user_cancellations": ("userCancellations",),
    "driver_cancellations": ("driverCancellations",),
    "earnings": ("earnings",),
}


def _to_number(value: Any) -> float:
    """Coerce a counter from a response row; absent or unparseable is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _counters_from_row(row: dict[str, Any]) -> dict[str, float]:
    counters: dict[str, float] = {}
    for name, keys in _COUNTER_API_KEYS.items():
        raw = next((row[k] for k in keys if row.get(k) is not None), None)
        counters[name] = _to_number(raw)
    return counters


@dataclass(frozen=True)
class RawCounterPoint:
    """One time bucket of raw operational counters.

    Counters missing from the backend row are 0.
    """

    timestamp: str
    """Bucket start as returned by the backend."""

    searches: float = 0.0
    search_for_quotes: float = 0.0
    """Quote requests (searchForQuotes / quotesRequested)."""

    quotes_accepted: float = 0.0
    bookings: float = 0.0
    rides: float = 0.0
    completed_rides: float = 0.0
    cancelled_rides: float = 0.0
    user_cancellations: float = 0.0
    driver_cancellations: float = 0.0
    earnings: float = 0.0

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> RawCounterPoint:
        """Build from a time-series response row.

        Args:
            row: Row with a 'date' or 'timestamp' key and camelCase counters.

        Raises:
            ValueError: If the row carries no bucket timestamp.
        """
        timestamp = row.get("timestamp", row.get("date"))
        if timestamp is None:
            raise ValueError(f"Series row has no 'date' or 'timestamp': {row!r}")
        return cls(timestamp=str(timestamp), **_counters_from_row(row))

    def counter(self, name: str) -> float:
        """Return a counter by field name."""
        if name not in COUNTER_FIELDS:
            raise ValueError(f"Unknown counter: {name!r}")
        value: float = getattr(self, name)
        return value

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class DimensionalPoint(RawCounterPoint):
    """A RawCounterPoint tagged with the dimension value it belongs to."""

    dimension_value: str = ""
    """Categorical value, e.g. a city name."""

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> DimensionalPoint:
        """Build from a dimensional trend response row.

        A null dimensionValue becomes 'Unknown'.
        """
        timestamp = row.get("timestamp", row.get("date"))
        if timestamp is None:
            raise ValueError(f"Series row has no 'date' or 'timestamp': {row!r}")
        value = row.get("dimensionValue")
        return cls(
            timestamp=str(timestamp),
            dimension_value="Unknown" if value is None else str(value),
            **_counters_from_row(row),
        )


# =============================================================================
# Segmentation
# =============================================================================

NONE_DIMENSION = "none"


@dataclass(frozen=True)
class SegmentSpec:
    """How one grid axis resolves its values.

    Either the top N values of `dimension` by weighted volume, or the
    explicit `custom_values`, which override `top_n` whenever non-empty.
    """

    dimension: str = NONE_DIMENSION
    """Dimension name, or 'none' when the axis is unused."""

    top_n: int = 5
    """How many values to keep when ranking."""

    custom_values: tuple[str, ...] = ()
    """Caller-chosen values, kept verbatim and in order."""

    def __post_init__(self) -> None:
        if self.dimension not in get_args(SegmentDimension):
            raise ValueError(f"Unknown segment dimension: {self.dimension!r}")
        if isinstance(self.top_n, bool) or self.top_n < 1:
            raise ValueError(f"top_n must be a positive integer, got {self.top_n!r}")
        object.__setattr__(self, "custom_values", tuple(self.custom_values))

    @property
    def is_none(self) -> bool:
        """True when the axis is unassigned."""
        return self.dimension == NONE_DIMENSION

    @property
    def has_custom_values(self) -> bool:
        return bool(self.custom_values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "dimension": self.dimension,
            "top_n": self.top_n,
            "custom_values": list(self.custom_values),
        }


@dataclass(frozen=True)
class QueryCombination:
    """One grid cell's filter overrides.

    `column_value` is a middle-segment value, or 'All' when the middle
    segment is unused. `row_value` is an outer-segment value, or None.
    """

    column_value: str
    row_value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"column_value": self.column_value, "row_value": self.row_value}


@dataclass(frozen=True)
class MultiSegmentConfig:
    """Everything needed to build one segment grid.

    Frozen and hashable; the orchestrator uses the config itself as the
    identity that decides whether an in-flight result is stale.
    """

    line: SegmentSpec
    """Inner segment: one chart line per value."""

    column: SegmentSpec = field(default_factory=SegmentSpec)
    """Middle segment: one grid column per value."""

    row: SegmentSpec = field(default_factory=SegmentSpec)
    """Outer segment: one grid row per value."""

    filters: MetricsFilters = field(default_factory=MetricsFilters)
    granularity: str = "day"
    metric: str = "searches"
    is_cumulative: bool = False

    def __post_init__(self) -> None:
        if self.line.is_none:
            raise ValueError("The line segment needs a dimension, not 'none'")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "line": self.line.to_dict(),
            "column": self.column.to_dict(),
            "row": self.row.to_dict(),
            "filters": self.filters.to_dict(),
            "granularity": self.granularity,
            "metric": self.metric,
            "is_cumulative": self.is_cumulative,
        }


# =============================================================================
# Series and grid
# =============================================================================


@dataclass(frozen=True)
class MetricSample:
    """SeriesAccumulator input for one bucket.

    Count metrics use `value`; rate metrics use `numerator` and
    `denominator`.
    """

    timestamp: str
    value: float | None = None
    numerator: float | None = None
    denominator: float | None = None


@dataclass(frozen=True)
class SeriesPoint:
    """One output value of a series."""

    timestamp: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass(frozen=True)
class GridLine:
    """A colored chart line inside a grid cell."""

    name: str
    color: str
    values: list[SeriesPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "name": self.name,
            "color": self.color,
            "values": [p.to_dict() for p in self.values],
        }


@dataclass(frozen=True)
class CellResult:
    """Outcome of fetching one combination's dimensional series."""

    combination: QueryCombination
    points: tuple[DimensionalPoint, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class GridCell:
    """One small-multiple chart in a segment grid."""

    column_value: str
    """Column label ('All' when the middle segment is unused)."""

    row_value: str | None
    """Row label, or None for the single placeholder row."""

    series: dict[str, list[SeriesPoint]] = field(default_factory=dict)
    """Accumulated values per line, all on the grid's shared timestamps."""

    colors: dict[str, str] = field(default_factory=dict)
    """Line name -> color, identical across every cell of a grid."""

    loading: bool = False
    error: str | None = None

    @property
    def lines(self) -> list[GridLine]:
        """Series as colored lines, in global line order."""
        return [
            GridLine(name=name, color=self.colors.get(name, ""), values=values)
            for name, values in self.series.items()
        ]

    @property
    def has_data(self) -> bool:
        return self.error is None and any(self.series.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output.

        `series` is wide-form (one row per timestamp, one key per line);
        `lines` carries the same values per line with their colors.
        """
        timestamps = next(
            ([p.timestamp for p in values] for values in self.series.values()), []
        )
        wide: list[dict[str, Any]] = [{"timestamp": ts} for ts in timestamps]
        for name, values in self.series.items():
            for row, point in zip(wide, values):
                row[name] = point.value
        return {
            "row_label": self.row_value,
            "column_label": self.column_value,
            "loading": self.loading,
            "error": self.error,
            "series": wide,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class Grid:
    """A rows x columns grid of small-multiple charts.

    All cells share `timestamps` and `line_values`, so lines with the
    same name are directly comparable across the grid.
    """

    metric: str
    is_cumulative: bool
    row_values: list[str | None] = field(default_factory=list)
    column_values: list[str] = field(default_factory=list)
    line_values: list[str] = field(default_factory=list)
    timestamps: list[str] = field(default_factory=list)
    cells: list[list[GridCell]] = field(default_factory=list)
    """cells[row_index][column_index]."""

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def is_empty(self) -> bool:
        """True for the explicit "no data" state.

        A grid whose cells are still loading or failed is not empty.
        """
        if not self.cells:
            return True
        if self.line_values:
            return False
        return not any(
            cell.loading or cell.error is not None
            for row in self.cells
            for cell in row
        )

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, columns)."""
        return (len(self.cells), len(self.cells[0]) if self.cells else 0)

    def cell(self, row_value: str | None, column_value: str) -> GridCell:
        """Look up a cell by its labels.

        Raises:
            KeyError: If no cell has these labels.
        """
        for row in self.cells:
            for cell in row:
                if cell.row_value == row_value and cell.column_value == column_value:
                    return cell
        raise KeyError((row_value, column_value))

    @property
    def df(self) -> pd.DataFrame:
        """Long-form DataFrame with columns: row, column, line, timestamp, value."""
        if self._df_cache is not None:
            return self._df_cache

        rows: list[dict[str, Any]] = []
        for grid_row in self.cells:
            for cell in grid_row:
                for line, values in cell.series.items():
                    for point in values:
                        rows.append(
                            {
                                "row": cell.row_value,
                                "column": cell.column_value,
                                "line": line,
                                "timestamp": point.timestamp,
                                "value": point.value,
                            }
                        )

        result_df = (
            pd.DataFrame(rows)
            if rows
            else pd.DataFrame(columns=["row", "column", "line", "timestamp", "value"])
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "metric": self.metric,
            "is_cumulative": self.is_cumulative,
            "is_empty": self.is_empty,
            "row_values": self.row_values,
            "column_values": self.column_values,
            "line_values": self.line_values,
            "timestamps": self.timestamps,
            "cells": [[cell.to_dict() for cell in row] for row in self.cells],
        }


# =============================================================================
# Comparison windows
# =============================================================================


@dataclass(frozen=True)
class ComparisonPeriod:
    """A current window and the equal-length window immediately before it."""

    current_from: str
    current_to: str
    previous_from: str
    previous_to: str

    def to_params(self) -> dict[str, str]:
        """Render the comparison endpoint's query parameters."""
        return {
            "currentFrom": self.current_from,
            "currentTo": self.current_to,
            "previousFrom": self.previous_from,
            "previousTo": self.previous_to,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class TimeWindow:
    """A labelled [date_from, date_to] window."""

    label: str
    date_from: str
    date_to: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class FixedWindows:
    """Today, yesterday and the same day last week, each a full day."""

    today: TimeWindow
    yesterday: TimeWindow
    last_week: TimeWindow

    @property
    def windows(self) -> tuple[TimeWindow, TimeWindow, TimeWindow]:
        return (self.today, self.yesterday, self.last_week)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {w.label: w.to_dict() for w in self.windows}


@dataclass(frozen=True)
class MetricChange:
    """Period-over-period change of one metric."""

    absolute: float
    percent: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"absolute": self.absolute, "percent": self.percent}


@dataclass(frozen=True)
class ComparisonResult:
    """Totals for a current and previous period and their changes."""

    current: dict[str, float]
    previous: dict[str, float]
    change: dict[str, MetricChange]
    period: ComparisonPeriod

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """DataFrame with columns: metric, current, previous, absolute, percent."""
        if self._df_cache is not None:
            return self._df_cache

        rows = [
            {
                "metric": metric,
                "current": self.current.get(metric, 0.0),
                "previous": self.previous.get(metric, 0.0),
                "absolute": change.absolute,
                "percent": change.percent,
            }
            for metric, change in self.change.items()
        ]
        result_df = (
            pd.DataFrame(rows)
            if rows
            else pd.DataFrame(
                columns=["metric", "current", "previous", "absolute", "percent"]
            )
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "current": self.current,
            "previous": self.previous,
            "change": {k: v.to_dict() for k, v in self.change.items()},
            "period": self.period.to_dict(),
        }


# =============================================================================
# Endpoint results
# =============================================================================


@dataclass(frozen=True)
class TimeSeriesResult:
    """Parsed time-series response."""

    points: list[RawCounterPoint]
    granularity: str
    filters: MetricsFilters = field(default_factory=MetricsFilters)

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """DataFrame with a timestamp column and one column per counter."""
        if self._df_cache is not None:
            return self._df_cache
        result_df = (
            pd.DataFrame([p.to_dict() for p in self.points])
            if self.points
            else pd.DataFrame(columns=["timestamp", *COUNTER_FIELDS])
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "granularity": self.granularity,
            "filters": self.filters.to_dict(),
            "points": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class DimensionalTimeSeriesResult:
    """Parsed dimensional trend response."""

    points: list[DimensionalPoint]
    dimension: str
    granularity: str

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    def dimension_values(self) -> list[str]:
        """Distinct dimension values in first-seen order."""
        return list(dict.fromkeys(p.dimension_value for p in self.points))

    @property
    def df(self) -> pd.DataFrame:
        """DataFrame with timestamp, dimension_value and counter columns."""
        if self._df_cache is not None:
            return self._df_cache
        result_df = (
            pd.DataFrame([p.to_dict() for p in self.points])
            if self.points
            else pd.DataFrame(
                columns=["timestamp", *COUNTER_FIELDS, "dimension_value"]
            )
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "dimension": self.dimension,
            "granularity": self.granularity,
            "points": [p.to_dict() for p in self.points],
        }


@dataclass(frozen=True)
class GroupedMetricsResult:
    """Totals grouped by one column, from the grouped endpoint."""

    group_by: str
    rows: list[dict[str, Any]]

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """DataFrame with one row per group."""
        if self._df_cache is not None:
            return self._df_cache
        result_df = pd.DataFrame(self.rows)
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"group_by": self.group_by, "rows": self.rows}


@dataclass(frozen=True)
class FilterOptions:
    """Values available for each filter, from the filters endpoint."""

    cities: list[str] = field(default_factory=list)
    merchants: list[dict[str, str]] = field(default_factory=list)
    """[{'id': ..., 'name': ...}]"""

    flow_types: list[str] = field(default_factory=list)
    trip_tags: list[str] = field(default_factory=list)
    service_tiers: list[str] = field(default_factory=list)
    date_min: str | None = None
    date_max: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return dataclasses.asdict(self)


# =============================================================================
# Live dashboards
# =============================================================================


@dataclass(frozen=True)
class KPI:
    """A headline metric with its day-over-day and week-over-week change."""

    key: str
    label: str
    value: float
    change_vs_yesterday: float | None
    change_vs_last_week: float | None
    trend_series: list[SeriesPoint] = field(default_factory=list)
    is_negative: bool = False
    """True when an increase is bad (cancellations)."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "key": self.key,
            "label": self.label,
            "value": self.value,
            "change_vs_yesterday": self.change_vs_yesterday,
            "change_vs_last_week": self.change_vs_last_week,
            "trend_series": [p.to_dict() for p in self.trend_series],
            "is_negative": self.is_negative,
        }


@dataclass(frozen=True)
class LiveRow:
    """One hour of the live comparison chart."""

    hour: str
    """'HH:00'."""

    today: float | None
    yesterday: float | None
    last_week: float | None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class LiveComparison:
    """Today, yesterday and last week aligned by hour of day."""

    metric: str
    is_cumulative: bool
    rows: list[LiveRow]
    totals: dict[str, float]
    """Legend totals keyed by window label."""

    colors: dict[str, str] = field(default_factory=dict)

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """DataFrame with columns: hour, today, yesterday, last_week."""
        if self._df_cache is not None:
            return self._df_cache
        result_df = (
            pd.DataFrame([r.to_dict() for r in self.rows])
            if self.rows
            else pd.DataFrame(columns=["hour", "today", "yesterday", "last_week"])
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "metric": self.metric,
            "is_cumulative": self.is_cumulative,
            "rows": [r.to_dict() for r in self.rows],
            "totals": self.totals,
            "colors": self.colors,
        }


@dataclass(frozen=True)
class LiveWindows:
    """Hourly series for today, yesterday and the same day last week."""

    windows: FixedWindows
    today: TimeSeriesResult
    yesterday: TimeSeriesResult
    last_week: TimeSeriesResult
    as_of: str
    """Reference time the windows were built from, '%Y-%m-%d %H:%M:%S'."""

    def series(self) -> dict[str, TimeSeriesResult]:
        """Series keyed by window label."""
        return {
            "today": self.today,
            "yesterday": self.yesterday,
            "last_week": self.last_week,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "windows": self.windows.to_dict(),
            "as_of": self.as_of,
            **{label: s.to_dict() for label, s in self.series().items()},
        }
