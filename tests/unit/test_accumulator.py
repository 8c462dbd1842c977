"""Unit tests for periodic and cumulative series construction."""

from __future__ import annotations

from segment_trends._internal.services.accumulator import (
    accumulate,
    build_series,
    pivot_lines,
    samples_for_metric,
    series_total,
)
from segment_trends._internal.services.derived_metrics import get_metric
from segment_trends.types import (
    DimensionalPoint,
    MetricSample,
    RawCounterPoint,
    SeriesPoint,
)


def _values(points: list[SeriesPoint]) -> list[float]:
    return [p.value for p in points]


class TestAccumulate:
    """Tests for accumulate()."""

    def test_cumulative_rate_is_ratio_of_sums(self) -> None:
        """10/100 then 5/20 accumulates to 15/120 = 12.5%, not the mean 17.5%."""
        samples = [
            MetricSample("t0", numerator=10, denominator=100),
            MetricSample("t1", numerator=5, denominator=20),
        ]
        result = accumulate(samples, is_cumulative=True, is_rate=True)
        assert _values(result) == [10.0, 12.5]

    def test_periodic_rate_is_per_bucket(self) -> None:
        """Non-cumulative rates are computed bucket by bucket."""
        samples = [
            MetricSample("t0", numerator=10, denominator=100),
            MetricSample("t1", numerator=5, denominator=20),
        ]
        result = accumulate(samples, is_cumulative=False, is_rate=True)
        assert _values(result) == [10.0, 25.0]

    def test_cumulative_count_is_running_sum(self) -> None:
        """Counts accumulate as a running total."""
        samples = [MetricSample("t0", value=3), MetricSample("t1", value=4)]
        result = accumulate(samples, is_cumulative=True, is_rate=False)
        assert _values(result) == [3.0, 7.0]

    def test_missing_value_counts_as_zero(self) -> None:
        """A sample without a value adds nothing."""
        samples = [MetricSample("t0", value=3), MetricSample("t1")]
        assert _values(accumulate(samples, is_cumulative=True, is_rate=False)) == [
            3.0,
            3.0,
        ]

    def test_zero_denominator_yields_zero(self) -> None:
        """A rate with no denominator yet reads 0 instead of NaN."""
        samples = [
            MetricSample("t0", numerator=0, denominator=0),
            MetricSample("t1", numerator=1, denominator=4),
        ]
        result = accumulate(samples, is_cumulative=True, is_rate=True)
        assert _values(result) == [0.0, 25.0]

    def test_timestamps_preserved(self) -> None:
        """Output points keep their sample timestamps."""
        result = accumulate(
            [MetricSample("a", value=1), MetricSample("b", value=2)],
            is_cumulative=False,
            is_rate=False,
        )
        assert [p.timestamp for p in result] == ["a", "b"]

    def test_fresh_state_per_call(self) -> None:
        """Two calls never share running totals."""
        samples = [MetricSample("t0", value=5)]
        first = accumulate(samples, is_cumulative=True, is_rate=False)
        second = accumulate(samples, is_cumulative=True, is_rate=False)
        assert first == second == [SeriesPoint("t0", 5.0)]

    def test_values_rounded_to_two_decimals(self) -> None:
        """1/3 reads 33.33%."""
        result = accumulate(
            [MetricSample("t0", numerator=1, denominator=3)],
            is_cumulative=False,
            is_rate=True,
        )
        assert _values(result) == [33.33]


class TestSamplesForMetric:
    """Tests for samples_for_metric()."""

    def test_rate_samples_carry_numerator_and_denominator(self) -> None:
        """Rate metrics read both counters."""
        points = [RawCounterPoint("t0", bookings=10, cancelled_rides=2)]
        samples = samples_for_metric(points, get_metric("cancellation_rate"))
        assert samples == [MetricSample("t0", numerator=2, denominator=10)]

    def test_conversion_sample_uses_fallback_denominator(self) -> None:
        """Tiered rows divide conversion by quote requests."""
        points = [RawCounterPoint("t0", search_for_quotes=50, completed_rides=5)]
        samples = samples_for_metric(points, get_metric("conversion"))
        assert samples[0].denominator == 50

    def test_count_samples_carry_value(self) -> None:
        """Count metrics read one counter into value."""
        points = [RawCounterPoint("t0", searches=9)]
        assert samples_for_metric(points, get_metric("searches")) == [
            MetricSample("t0", value=9)
        ]


class TestBuildSeries:
    """Tests for build_series()."""

    def test_cumulative_conversion(self) -> None:
        """Cumulative conversion divides summed rides by summed searches."""
        points = [
            RawCounterPoint("t0", searches=100, completed_rides=10),
            RawCounterPoint("t1", searches=20, completed_rides=5),
        ]
        series = build_series(points, get_metric("conversion"), is_cumulative=True)
        assert _values(series) == [10.0, 12.5]


class TestSeriesTotal:
    """Tests for series_total()."""

    def test_count_total_is_sum(self) -> None:
        """Count totals add up."""
        samples = [MetricSample("a", value=2), MetricSample("b", value=3)]
        assert series_total(samples, is_rate=False) == 5.0

    def test_rate_total_is_ratio_of_sums(self) -> None:
        """Rate totals divide the summed counters."""
        samples = [
            MetricSample("a", numerator=10, denominator=100),
            MetricSample("b", numerator=5, denominator=20),
        ]
        assert series_total(samples, is_rate=True) == 12.5

    def test_empty_total_is_zero(self) -> None:
        """No samples means a zero total."""
        assert series_total([], is_rate=True) == 0.0


class TestPivotLines:
    """Tests for pivot_lines()."""

    def test_lines_share_timestamp_axis(self) -> None:
        """A value missing a bucket gets a zero there."""
        points = [
            DimensionalPoint("t0", searches=5, dimension_value="A"),
            DimensionalPoint("t1", searches=7, dimension_value="A"),
            DimensionalPoint("t1", searches=2, dimension_value="B"),
        ]
        lines = pivot_lines(points, get_metric("searches"), is_cumulative=False)
        assert list(lines) == ["A", "B"]
        assert _values(lines["A"]) == [5.0, 7.0]
        assert _values(lines["B"]) == [0.0, 2.0]
        assert [p.timestamp for p in lines["B"]] == ["t0", "t1"]

    def test_duplicate_points_are_summed(self) -> None:
        """Two rows for the same value and bucket merge."""
        points = [
            DimensionalPoint("t0", searches=5, dimension_value="A"),
            DimensionalPoint("t0", searches=3, dimension_value="A"),
        ]
        lines = pivot_lines(points, get_metric("searches"), is_cumulative=False)
        assert _values(lines["A"]) == [8.0]

    def test_explicit_axis_and_lines(self) -> None:
        """Requested lines without data yield zero series on the given axis."""
        points = [DimensionalPoint("t1", searches=4, dimension_value="A")]
        lines = pivot_lines(
            points,
            get_metric("searches"),
            is_cumulative=True,
            timestamps=["t0", "t1", "t2"],
            line_values=["Z", "A"],
        )
        assert list(lines) == ["Z", "A"]
        assert _values(lines["Z"]) == [0.0, 0.0, 0.0]
        assert _values(lines["A"]) == [0.0, 4.0, 4.0]

    def test_unordered_input_is_sorted_by_timestamp(self) -> None:
        """Cumulative sums run in chronological order."""
        points = [
            DimensionalPoint("2025-01-02", searches=1, dimension_value="A"),
            DimensionalPoint("2025-01-01", searches=10, dimension_value="A"),
        ]
        lines = pivot_lines(points, get_metric("searches"), is_cumulative=True)
        assert _values(lines["A"]) == [10.0, 11.0]
