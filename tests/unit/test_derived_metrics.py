"""Unit tests for derived metric arithmetic and formatting."""

from __future__ import annotations

import math

import pytest

from segment_trends._internal.services.derived_metrics import (
    METRICS,
    compute_change,
    conversion_denominator,
    format_currency,
    format_metric,
    format_number,
    format_percent,
    get_metric,
    is_negative_metric,
    metric_value,
    percent_change,
    round2,
    safe_rate_percent,
    trend_direction,
)
from segment_trends.types import RawCounterPoint


class TestRegistry:
    """Tests for the metric registry."""

    def test_conversion_is_completed_rides_over_searches(self) -> None:
        """Conversion divides completed rides by searches."""
        metric = get_metric("conversion")
        assert metric.is_rate
        assert metric.numerator == "completed_rides"
        assert metric.denominator == "searches"
        assert metric.denominator_fallback == "search_for_quotes"

    def test_only_conversion_has_a_fallback(self) -> None:
        """No other rate metric falls back to quote requests."""
        with_fallback = [k for k, m in METRICS.items() if m.denominator_fallback]
        assert with_fallback == ["conversion"]

    def test_unknown_metric_raises(self) -> None:
        """Unknown keys list the valid ones."""
        with pytest.raises(ValueError, match="Valid metrics"):
            get_metric("happiness")

    def test_count_metric_is_not_rate(self) -> None:
        """Counts have no denominator."""
        assert not get_metric("searches").is_rate

    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("cancellation_rate", True),
            ("cancelled_rides", True),
            ("bookings", False),
            ("some_cancellation_thing", True),
            ("unknown", False),
        ],
    )
    def test_is_negative_metric(self, key: str, expected: bool) -> None:
        """Cancellation metrics are negative, including unregistered ones."""
        assert is_negative_metric(key) is expected


class TestRound2:
    """Tests for round2()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(12.5, 12.5), (33.3333, 33.33), (66.6666, 66.67), (0.125, 0.13), (0, 0)],
    )
    def test_rounds_half_up(self, value: float, expected: float) -> None:
        """Values round half up to 2 decimals."""
        assert round2(value) == expected

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_is_zero(self, value: float) -> None:
        """NaN and infinities round to 0 instead of raising."""
        assert round2(value) == 0.0

    def test_huge_value_is_unchanged(self) -> None:
        """A value too large to scale by 100 is returned as is."""
        assert round2(1.7e308) == 1.7e308
        assert round2(-1.7e308) == -1.7e308


class TestSafeRatePercent:
    """Tests for safe_rate_percent()."""

    def test_basic_rate(self) -> None:
        """15 of 120 is 12.5%."""
        assert safe_rate_percent(15, 120) == 12.5

    @pytest.mark.parametrize("denominator", [0, None, math.nan])
    def test_undefined_denominator_is_zero(self, denominator: float | None) -> None:
        """A zero, missing or NaN denominator yields 0."""
        assert safe_rate_percent(5, denominator) == 0.0

    @pytest.mark.parametrize("numerator", [0, None, math.nan])
    def test_empty_numerator_is_zero(self, numerator: float | None) -> None:
        """A zero, missing or NaN numerator yields 0."""
        assert safe_rate_percent(numerator, 10) == 0.0


class TestMetricValue:
    """Tests for single-bucket metric values."""

    def test_conversion_uses_searches(self) -> None:
        """Conversion divides by searches when there are any."""
        point = RawCounterPoint(
            timestamp="t", searches=200, search_for_quotes=50, completed_rides=20
        )
        assert metric_value(point, get_metric("conversion")) == 10.0

    def test_conversion_falls_back_to_quote_requests(self) -> None:
        """Tiered data with no searches divides by quote requests."""
        point = RawCounterPoint(
            timestamp="t", searches=0, search_for_quotes=40, completed_rides=10
        )
        assert conversion_denominator(point) == 40
        assert metric_value(point, get_metric("conversion")) == 25.0

    def test_other_rates_do_not_fall_back(self) -> None:
        """Rider fare acceptance stays 0 when searches are 0."""
        point = RawCounterPoint(timestamp="t", searches=0, search_for_quotes=40)
        assert metric_value(point, get_metric("rider_fare_acceptance")) == 0.0

    def test_count_metric_returns_counter(self) -> None:
        """Counts return the raw counter."""
        point = RawCounterPoint(timestamp="t", bookings=7)
        assert metric_value(point, get_metric("bookings")) == 7


class TestChange:
    """Tests for period-over-period change."""

    def test_percent_change(self) -> None:
        """120 vs 100 is +20%."""
        assert percent_change(120, 100) == 20.0

    def test_percent_change_decrease(self) -> None:
        """50 vs 200 is -75%."""
        assert percent_change(50, 200) == -75.0

    def test_from_zero_baseline_growth(self) -> None:
        """Any growth from zero reads as 100%."""
        assert percent_change(5, 0) == 100.0

    def test_from_zero_baseline_flat(self) -> None:
        """Zero to zero is 0%."""
        assert percent_change(0, 0) == 0.0

    def test_compute_change(self) -> None:
        """Absolute and percent changes are both rounded."""
        change = compute_change(10, 3)
        assert change.absolute == 7
        assert change.percent == 233.33

    def test_compute_change_overflow(self) -> None:
        """A difference that overflows to infinity reads as no change."""
        change = compute_change(1.7e308, -1.7e308)
        assert change.absolute == 0.0
        assert change.percent == 0.0

    def test_percent_change_overflow(self) -> None:
        """A ratio that overflows to infinity reads as no change."""
        assert percent_change(1.7e308, 1e-10) == 0.0

    @pytest.mark.parametrize(
        ("key", "change", "expected"),
        [
            ("bookings", 5.0, "up_good"),
            ("bookings", -5.0, "down_bad"),
            ("cancellation_rate", 5.0, "up_bad"),
            ("cancellation_rate", -5.0, "down_good"),
            ("bookings", 0.0, "flat"),
            ("bookings", None, "flat"),
        ],
    )
    def test_trend_direction(
        self, key: str, change: float | None, expected: str
    ) -> None:
        """Direction respects whether an increase is good."""
        assert trend_direction(key, change) == expected


class TestFormatting:
    """Tests for display formatting."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1_234_567, "1.23M"), (4_500, "4.50K"), (999, "999"), (12.5, "12.5")],
    )
    def test_format_number(self, value: float, expected: str) -> None:
        """Counts compact to K and M."""
        assert format_number(value) == expected

    def test_format_percent(self) -> None:
        """Percentages show 2 decimals."""
        assert format_percent(12.5) == "12.50%"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (25_000_000, "₹2.50Cr"),
            (250_000, "₹2.50L"),
            (2_500, "₹2.5K"),
            (250, "₹250"),
        ],
    )
    def test_format_currency(self, value: float, expected: str) -> None:
        """Rupee amounts compact to crore, lakh and thousand."""
        assert format_currency(value) == expected

    def test_format_metric_dispatches_by_kind(self) -> None:
        """Rates, currency and counts each use their own format."""
        assert format_metric("conversion", 12.5) == "12.50%"
        assert format_metric("earnings", 2_500) == "₹2.5K"
        assert format_metric("searches", 4_500) == "4.50K"
