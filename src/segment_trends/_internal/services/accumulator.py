"""Periodic and cumulative series construction.

Count metrics accumulate as a running sum. Rate metrics accumulate their
numerator and denominator separately and divide at each point, so the
cumulative rate at point k is ``sum(num[0..k]) / sum(den[0..k]) * 100``.
Averaging per-bucket percentages would weight a quiet hour the same as a
busy one.

All output values are rounded to 2 decimal places.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from segment_trends._internal.services.derived_metrics import (
    MetricDefinition,
    denominator_of,
    numerator_of,
    round2,
    safe_rate_percent,
)
from segment_trends.types import (
    COUNTER_FIELDS,
    DimensionalPoint,
    MetricSample,
    RawCounterPoint,
    SeriesPoint,
)


class CountAccumulator:
    """Running sum for a count metric."""

    def __init__(self) -> None:
        self.total = 0.0

    def add(self, sample: MetricSample) -> float:
        self.total += sample.value or 0.0
        return self.total


class RateAccumulator:
    """Running numerator and denominator for a rate metric."""

    def __init__(self) -> None:
        self.numerator = 0.0
        self.denominator = 0.0

    def add(self, sample: MetricSample) -> float:
        self.numerator += sample.numerator or 0.0
        self.denominator += sample.denominator or 0.0
        return safe_rate_percent(self.numerator, self.denominator)


AccumulatorState = CountAccumulator | RateAccumulator


def accumulate(
    samples: Iterable[MetricSample],
    *,
    is_cumulative: bool,
    is_rate: bool,
) -> list[SeriesPoint]:
    """Turn per-bucket samples into output values.

    Samples must already be in chronological order. A fresh accumulator
    state is used for every call.

    Args:
        samples: Per-bucket inputs.
        is_cumulative: Emit running totals instead of per-bucket values.
        is_rate: Read numerator/denominator instead of value.

    Returns:
        One SeriesPoint per sample, values rounded to 2 decimals.

    Example:
        ```python
        accumulate(
            [MetricSample("t0", numerator=10, denominator=100),
             MetricSample("t1", numerator=5, denominator=20)],
            is_cumulative=True,
            is_rate=True,
        )
        # values: [10.0, 12.5]
        ```
    """
    state: AccumulatorState = RateAccumulator() if is_rate else CountAccumulator()
    points: list[SeriesPoint] = []
    for sample in samples:
        if is_cumulative:
            value = state.add(sample)
        elif is_rate:
            value = safe_rate_percent(sample.numerator, sample.denominator)
        else:
            value = sample.value or 0.0
        points.append(SeriesPoint(timestamp=sample.timestamp, value=round2(value)))
    return points


def samples_for_metric(
    points: Iterable[RawCounterPoint],
    metric: MetricDefinition,
) -> list[MetricSample]:
    """Extract a metric's accumulator inputs from raw counters."""
    samples: list[MetricSample] = []
    for point in points:
        numerator = numerator_of(point, metric)
        if metric.is_rate:
            samples.append(
                MetricSample(
                    timestamp=point.timestamp,
                    numerator=numerator,
                    denominator=denominator_of(point, metric),
                )
            )
        else:
            samples.append(MetricSample(timestamp=point.timestamp, value=numerator))
    return samples


def build_series(
    points: Iterable[RawCounterPoint],
    metric: MetricDefinition,
    *,
    is_cumulative: bool,
) -> list[SeriesPoint]:
    """Periodic or cumulative series of a metric over raw points."""
    return accumulate(
        samples_for_metric(points, metric),
        is_cumulative=is_cumulative,
        is_rate=metric.is_rate,
    )


def series_total(samples: Iterable[MetricSample], *, is_rate: bool) -> float:
    """Window total: the sum for counts, the ratio of sums for rates."""
    state: AccumulatorState = RateAccumulator() if is_rate else CountAccumulator()
    total = 0.0
    for sample in samples:
        total = state.add(sample)
    return round2(total)


def _merge(a: RawCounterPoint, b: RawCounterPoint) -> RawCounterPoint:
    """Sum two points' counters, keeping a's timestamp."""
    return dataclasses.replace(
        a, **{name: a.counter(name) + b.counter(name) for name in COUNTER_FIELDS}
    )


def pivot_lines(
    points: Iterable[DimensionalPoint],
    metric: MetricDefinition,
    *,
    is_cumulative: bool,
    timestamps: Sequence[str] | None = None,
    line_values: Sequence[str] | None = None,
) -> dict[str, list[SeriesPoint]]:
    """Split dimensional points into one accumulated series per value.

    Every series is laid out on the same timestamp axis; a bucket with no
    point for a value counts as all-zero counters. Duplicate points for
    the same value and bucket are summed.

    Args:
        points: Dimensional points, in any order.
        metric: Metric to compute.
        is_cumulative: Accumulate running totals.
        timestamps: Shared x-axis. Defaults to the sorted distinct
            timestamps of points.
        line_values: Values to emit, in order. Defaults to every value in
            first-seen order. Values without points yield zero series.

    Returns:
        Mapping of dimension value to its series.
    """
    by_line: dict[str, dict[str, RawCounterPoint]] = {}
    for point in points:
        buckets = by_line.setdefault(point.dimension_value, {})
        existing = buckets.get(point.timestamp)
        buckets[point.timestamp] = (
            point if existing is None else _merge(existing, point)
        )

    axis = (
        list(timestamps)
        if timestamps is not None
        else sorted({ts for buckets in by_line.values() for ts in buckets})
    )
    lines = list(line_values) if line_values is not None else list(by_line)

    result: dict[str, list[SeriesPoint]] = {}
    for line in lines:
        buckets = by_line.get(line, {})
        aligned = [buckets.get(ts) or RawCounterPoint(timestamp=ts) for ts in axis]
        result[line] = build_series(aligned, metric, is_cumulative=is_cumulative)
    return result
