"""
segment_trends - Dimensional time-series aggregation and segmentation.

Ranks dimension values by volume, plans and fetches segment grids of
small-multiple charts, and accumulates count and rate metrics without
averaging percentages.
"""

from segment_trends._literal_types import (
    Dimension,
    Granularity,
    GroupBy,
    OutputFormat,
    SegmentDimension,
    VehicleCategory,
)
from segment_trends.auth import Credentials
from segment_trends.exceptions import (
    APIError,
    AuthenticationError,
    ConfigError,
    InvalidPeriodError,
    ProfileExistsError,
    ProfileNotFoundError,
    QueryError,
    RateLimitError,
    SegmentTrendsError,
    ServerError,
)
from segment_trends.types import (
    KPI,
    CellResult,
    ComparisonPeriod,
    ComparisonResult,
    DimensionalPoint,
    DimensionalTimeSeriesResult,
    FilterOptions,
    FixedWindows,
    Grid,
    GridCell,
    GridLine,
    GroupedMetricsResult,
    LiveComparison,
    LiveRow,
    LiveWindows,
    MetricChange,
    MetricSample,
    MetricsFilters,
    MultiSegmentConfig,
    QueryCombination,
    RawCounterPoint,
    SegmentSpec,
    SeriesPoint,
    TimeSeriesResult,
    TimeWindow,
)
from segment_trends.workspace import Workspace

__version__ = "0.1.0"

__all__ = [
    # Core
    "Workspace",
    "Credentials",
    # Type aliases
    "Dimension",
    "Granularity",
    "GroupBy",
    "OutputFormat",
    "SegmentDimension",
    "VehicleCategory",
    # Exceptions
    "SegmentTrendsError",
    "APIError",
    "AuthenticationError",
    "ConfigError",
    "InvalidPeriodError",
    "ProfileExistsError",
    "ProfileNotFoundError",
    "QueryError",
    "RateLimitError",
    "ServerError",
    # Inputs
    "MetricsFilters",
    "MultiSegmentConfig",
    "SegmentSpec",
    # Results
    "CellResult",
    "ComparisonPeriod",
    "ComparisonResult",
    "DimensionalPoint",
    "DimensionalTimeSeriesResult",
    "FilterOptions",
    "FixedWindows",
    "Grid",
    "GridCell",
    "GridLine",
    "GroupedMetricsResult",
    "KPI",
    "LiveComparison",
    "LiveRow",
    "LiveWindows",
    "MetricChange",
    "MetricSample",
    "QueryCombination",
    "RawCounterPoint",
    "SeriesPoint",
    "TimeSeriesResult",
    "TimeWindow",
]
