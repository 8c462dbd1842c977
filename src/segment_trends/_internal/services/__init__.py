"""Service layer for segment_trends.

The pure modules (ranking, combinations, accumulator, derived_metrics,
grid, axis) hold the computation. The service classes exported here
schedule the fetches those computations need.
"""

from segment_trends._internal.services.comparison import ComparisonService
from segment_trends._internal.services.live_metrics import LiveMetricsService
from segment_trends._internal.services.segment_trend import SegmentTrendService

__all__ = ["ComparisonService", "LiveMetricsService", "SegmentTrendService"]
