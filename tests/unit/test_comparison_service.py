"""Unit tests for ComparisonService."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from segment_trends._internal.services.comparison import (
    ComparisonService,
    _snake,
)
from segment_trends.exceptions import InvalidPeriodError
from segment_trends.types import MetricsFilters


@pytest.fixture
def api_client() -> MagicMock:
    """Mock client with every endpoint stubbed."""
    client = MagicMock()
    client.comparison = AsyncMock()
    client.time_series = AsyncMock()
    client.filter_options = AsyncMock()
    client.grouped = AsyncMock()
    return client


class TestSnakeCase:
    """Tests for response key conversion."""

    @pytest.mark.parametrize(
        ("camel", "snake"),
        [
            ("completedRides", "completed_rides"),
            ("searches", "searches"),
            ("searchForQuotes", "search_for_quotes"),
        ],
    )
    def test_snake(self, camel: str, snake: str) -> None:
        """camelCase keys become snake_case."""
        assert _snake(camel) == snake


class TestCompare:
    """Tests for ComparisonService.compare()."""

    @pytest.mark.asyncio
    async def test_previous_window_is_shifted(self, api_client: MagicMock) -> None:
        """The previous window is the same length, immediately before."""
        api_client.comparison.return_value = {}
        service = ComparisonService(api_client)

        result = await service.compare("2025-01-10 00:00:00", "2025-01-11 00:00:00")

        period = api_client.comparison.await_args.args[0]
        assert period.previous_from == "2025-01-09 00:00:00"
        assert period.previous_to == "2025-01-10 00:00:00"
        assert result.period == period

    @pytest.mark.asyncio
    async def test_reported_and_recomputed_changes(
        self, api_client: MagicMock
    ) -> None:
        """Server changes are kept; missing ones are recomputed."""
        api_client.comparison.return_value = {
            "current": {"searches": 120, "completedRides": 15, "city": "Pune"},
            "previous": {"searches": 100, "completedRides": 0},
            "change": {"searches": {"absolute": 20, "percent": 20}},
        }
        service = ComparisonService(api_client)

        result = await service.compare("2025-01-10", "2025-01-11")

        assert result.current == {"searches": 120.0, "completed_rides": 15.0}
        assert result.previous["completed_rides"] == 0.0
        assert result.change["searches"].percent == 20.0
        assert result.change["completed_rides"].absolute == 15.0
        assert result.change["completed_rides"].percent == 100.0

    @pytest.mark.asyncio
    async def test_filters_forwarded(self, api_client: MagicMock) -> None:
        """Dimension filters reach the client unchanged."""
        api_client.comparison.return_value = {}
        filters = MetricsFilters(city=("Pune",))
        await ComparisonService(api_client).compare(
            "2025-01-10", "2025-01-11", filters
        )
        assert api_client.comparison.await_args.args[1] is filters

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("date_from", "date_to"),
        [("2025-01-11", "2025-01-10"), ("yesterday", "2025-01-10"), ("", "")],
    )
    async def test_invalid_window_sends_nothing(
        self, api_client: MagicMock, date_from: str, date_to: str
    ) -> None:
        """Malformed windows raise before any request."""
        with pytest.raises(InvalidPeriodError):
            await ComparisonService(api_client).compare(date_from, date_to)
        api_client.comparison.assert_not_awaited()


class TestMetadata:
    """Tests for the time-series, filters and grouped queries."""

    @pytest.mark.asyncio
    async def test_time_series_sorted(self, api_client: MagicMock) -> None:
        """Points come back in bucket order."""
        api_client.time_series.return_value = {
            "data": [
                {"date": "2025-01-02", "searches": 5},
                {"date": "2025-01-01", "searches": 3},
            ]
        }
        result = await ComparisonService(api_client).time_series(MetricsFilters())
        assert [p.timestamp for p in result.points] == ["2025-01-01", "2025-01-02"]
        assert result.points[0].searches == 3.0
        assert result.granularity == "day"

    @pytest.mark.asyncio
    async def test_filter_options(self, api_client: MagicMock) -> None:
        """Filter metadata is mapped to snake_case fields."""
        api_client.filter_options.return_value = {
            "cities": ["Pune", "Agra"],
            "merchants": [{"id": 7, "name": "Acme"}],
            "flowTypes": ["NORMAL"],
            "dateRange": {"min": "2024-01-01", "max": "2025-01-10"},
        }
        options = await ComparisonService(api_client).filter_options()
        assert options.cities == ["Pune", "Agra"]
        assert options.merchants == [{"id": "7", "name": "Acme"}]
        assert options.flow_types == ["NORMAL"]
        assert options.trip_tags == []
        assert (options.date_min, options.date_max) == ("2024-01-01", "2025-01-10")

    @pytest.mark.asyncio
    async def test_grouped_rows(self, api_client: MagicMock) -> None:
        """Grouped rows use snake_case keys."""
        api_client.grouped.return_value = {
            "groupBy": "city",
            "data": [{"city": "Pune", "completedRides": 3}],
        }
        result = await ComparisonService(api_client).grouped("city")
        assert result.group_by == "city"
        assert result.rows == [{"city": "Pune", "completed_rides": 3}]

    @pytest.mark.asyncio
    async def test_grouped_defaults_group_by(self, api_client: MagicMock) -> None:
        """Without groupBy in the payload, the requested column is used."""
        api_client.grouped.return_value = {"data": []}
        result = await ComparisonService(api_client).grouped("trip_tag")
        assert result.group_by == "trip_tag"
        assert result.rows == []
