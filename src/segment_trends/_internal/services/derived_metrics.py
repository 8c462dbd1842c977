"""Derived metric arithmetic.

Rate metrics are defined as a numerator counter over a denominator
counter, expressed as a percentage. Every function here is total: a zero,
missing, or NaN denominator yields 0 rather than raising or producing
NaN/Infinity.

Tiered data: some backends report tiered products with ``searches == 0``
and all demand counted as quote requests. The conversion rate therefore
falls back from ``searches`` to ``search_for_quotes`` as its denominator
when searches is zero. Only conversion applies this fallback.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from segment_trends.types import MetricChange, RawCounterPoint


@dataclass(frozen=True)
class MetricDefinition:
    """A count metric, or a rate of two counters."""

    key: str
    """Registry key, e.g. 'conversion'."""

    label: str
    """Display label."""

    numerator: str
    """Counter field; for count metrics, the counter itself."""

    denominator: str | None = None
    """Counter field for rate metrics, None for counts."""

    denominator_fallback: str | None = None
    """Counter used when the denominator counter is zero."""

    is_negative: bool = False
    """True when an increase is bad."""

    is_currency: bool = False

    @property
    def is_rate(self) -> bool:
        return self.denominator is not None


_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition("searches", "Searches", "searches"),
    MetricDefinition("quotes_requested", "Quotes Requested", "search_for_quotes"),
    MetricDefinition("quotes_accepted", "Quotes Accepted", "quotes_accepted"),
    MetricDefinition("bookings", "Bookings", "bookings"),
    MetricDefinition("completed_rides", "Completed Rides", "completed_rides"),
    MetricDefinition(
        "cancelled_rides", "Cancelled Rides", "cancelled_rides", is_negative=True
    ),
    MetricDefinition(
        "user_cancellations",
        "User Cancellations",
        "user_cancellations",
        is_negative=True,
    ),
    MetricDefinition(
        "driver_cancellations",
        "Driver Cancellations",
        "driver_cancellations",
        is_negative=True,
    ),
    MetricDefinition("earnings", "Earnings", "earnings", is_currency=True),
    MetricDefinition(
        "conversion",
        "Conversion Rate",
        "completed_rides",
        "searches",
        denominator_fallback="search_for_quotes",
    ),
    MetricDefinition(
        "rider_fare_acceptance",
        "Rider Fare Acceptance",
        "search_for_quotes",
        "searches",
    ),
    MetricDefinition(
        "driver_quote_acceptance",
        "Driver Quote Acceptance",
        "quotes_accepted",
        "search_for_quotes",
    ),
    MetricDefinition(
        "driver_acceptance", "Driver Acceptance Rate", "rides", "bookings"
    ),
    MetricDefinition(
        "cancellation_rate",
        "Cancellation Rate",
        "cancelled_rides",
        "bookings",
        is_negative=True,
    ),
    MetricDefinition(
        "user_cancellation_rate",
        "User Cancellation Rate",
        "user_cancellations",
        "bookings",
        is_negative=True,
    ),
    MetricDefinition(
        "driver_cancellation_rate",
        "Driver Cancellation Rate",
        "driver_cancellations",
        "bookings",
        is_negative=True,
    ),
)

METRICS: dict[str, MetricDefinition] = {m.key: m for m in _DEFINITIONS}

# Substrings marking metrics where an increase is bad
NEGATIVE_METRICS: tuple[str, ...] = ("cancellation", "cancelled")


def get_metric(key: str) -> MetricDefinition:
    """Look up a metric definition.

    Raises:
        ValueError: If key is not a known metric.
    """
    try:
        return METRICS[key]
    except KeyError:
        valid = ", ".join(METRICS)
        raise ValueError(f"Unknown metric '{key}'. Valid metrics: {valid}") from None


def is_negative_metric(key: str) -> bool:
    """True when an increase in the metric is bad."""
    metric = METRICS.get(key)
    if metric is not None:
        return metric.is_negative
    lowered = key.lower()
    return any(marker in lowered for marker in NEGATIVE_METRICS)


def round2(value: float) -> float:
    """Round half up to 2 decimal places; NaN and infinities become 0."""
    if not math.isfinite(value):
        return 0.0
    scaled = value * 100 + 0.5
    if not math.isfinite(scaled):
        # Past 1e306 every float is already a whole number
        return value
    return math.floor(scaled) / 100


def safe_rate_percent(
    numerator: float | None,
    denominator: float | None,
) -> float:
    """Return numerator / denominator * 100, or 0 when undefined.

    Example:
        ```python
        safe_rate_percent(15, 120)  # 12.5
        safe_rate_percent(5, 0)     # 0.0
        ```
    """
    if not denominator or math.isnan(denominator) or not numerator:
        return 0.0
    if math.isnan(numerator):
        return 0.0
    rate = numerator / denominator * 100
    return rate if math.isfinite(rate) else 0.0


def conversion_denominator(point: RawCounterPoint) -> float:
    """Searches, or quote requests when the data has no searches (tiered)."""
    return point.searches if point.searches > 0 else point.search_for_quotes


def numerator_of(point: RawCounterPoint, metric: MetricDefinition) -> float:
    return point.counter(metric.numerator)


def denominator_of(point: RawCounterPoint, metric: MetricDefinition) -> float | None:
    """Denominator counter for a rate metric, None for count metrics."""
    if metric.denominator is None:
        return None
    value = point.counter(metric.denominator)
    if value == 0 and metric.denominator_fallback is not None:
        return point.counter(metric.denominator_fallback)
    return value


def metric_value(point: RawCounterPoint, metric: MetricDefinition) -> float:
    """Single-bucket value of a metric (count, or rate percentage)."""
    if metric.is_rate:
        return round2(
            safe_rate_percent(
                numerator_of(point, metric), denominator_of(point, metric)
            )
        )
    return numerator_of(point, metric)


def percent_change(current: float, previous: float) -> float:
    """Period-over-period change in percent, rounded to 2 decimals.

    From a zero baseline, any growth reads as 100% and no growth as 0%.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round2((current - previous) / previous * 100)


def compute_change(current: float, previous: float) -> MetricChange:
    """Absolute and percent change from previous to current."""
    return MetricChange(
        absolute=round2(current - previous),
        percent=percent_change(current, previous),
    )


def trend_direction(metric_key: str, change: float | None) -> str:
    """Classify a change for coloring.

    Returns:
        'up_good', 'up_bad', 'down_good', 'down_bad', or 'flat'.
    """
    if change is None or change == 0:
        return "flat"
    negative = is_negative_metric(metric_key)
    if change > 0:
        return "up_bad" if negative else "up_good"
    return "down_good" if negative else "down_bad"


# =============================================================================
# Display formatting
# =============================================================================


def _plain_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_number(value: float) -> str:
    """Compact count: 1.23M, 4.50K, or a grouped plain number."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return _plain_number(value)


def format_percent(value: float) -> str:
    """Percentage with 2 decimals, e.g. '12.50%'."""
    return f"{value:.2f}%"


def format_currency(value: float) -> str:
    """Rupee amount compacted to crore, lakh or thousand."""
    if value >= 10_000_000:
        return f"₹{value / 10_000_000:.2f}Cr"
    if value >= 100_000:
        return f"₹{value / 100_000:.2f}L"
    if value >= 1_000:
        return f"₹{value / 1_000:.1f}K"
    return f"₹{_plain_number(value)}"


def format_metric(key: str, value: float) -> str:
    """Format a value according to its metric's kind."""
    metric = get_metric(key)
    if metric.is_rate:
        return format_percent(value)
    if metric.is_currency:
        return format_currency(value)
    return format_number(value)
