"""Shared fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import typer
from typer.testing import CliRunner

from segment_trends._internal.config import EngineSettings, ProfileInfo
from segment_trends._internal.session import SessionContext
from segment_trends.types import (
    KPI,
    ComparisonPeriod,
    ComparisonResult,
    FilterOptions,
    Grid,
    GridCell,
    GroupedMetricsResult,
    LiveComparison,
    LiveRow,
    MetricChange,
    SeriesPoint,
)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI runner for testing commands."""
    return CliRunner()


def _sample_grid() -> Grid:
    series = {
        "Pune": [SeriesPoint("2025-01-01", 10.0), SeriesPoint("2025-01-02", 12.0)],
    }
    return Grid(
        metric="searches",
        is_cumulative=False,
        row_values=[None],
        column_values=["Auto", "Cab"],
        line_values=["Pune"],
        timestamps=["2025-01-01", "2025-01-02"],
        cells=[
            [
                GridCell("Auto", None, series=series, colors={"Pune": "#123456"}),
                GridCell("Cab", None, error="Server error"),
            ]
        ],
    )


@pytest.fixture
def mock_workspace() -> MagicMock:
    """Create a mock Workspace whose async operations return sample results."""
    workspace = MagicMock()
    workspace.aclose = AsyncMock()

    workspace.rank = AsyncMock(return_value=["Pune", "Agra", "Goa"])
    workspace.segment_grid = AsyncMock(return_value=_sample_grid())
    workspace.compare = AsyncMock(
        return_value=ComparisonResult(
            current={"searches": 120.0},
            previous={"searches": 100.0},
            change={"searches": MetricChange(absolute=20.0, percent=20.0)},
            period=ComparisonPeriod(
                "2025-01-10 00:00:00",
                "2025-01-10 23:59:59",
                "2025-01-09 00:00:00",
                "2025-01-09 23:59:59",
            ),
        )
    )
    workspace.live = AsyncMock(
        return_value=LiveComparison(
            metric="searches",
            is_cumulative=False,
            rows=[
                LiveRow("00:00", 5.0, 4.0, None),
                LiveRow("01:00", 7.0, 6.0, 3.0),
            ],
            totals={"today": 12.0, "yesterday": 10.0, "last_week": 3.0},
        )
    )
    workspace.kpis = AsyncMock(
        return_value=[
            KPI(
                key="searches",
                label="Searches",
                value=120.0,
                change_vs_yesterday=20.0,
                change_vs_last_week=None,
                trend_series=[SeriesPoint("00:00", 120.0)],
            )
        ]
    )
    workspace.filter_options = AsyncMock(
        return_value=FilterOptions(cities=["Pune", "Agra"], flow_types=["NORMAL"])
    )
    workspace.grouped = AsyncMock(
        return_value=GroupedMetricsResult(
            group_by="city",
            rows=[
                {"city": "Pune", "searches": 100},
                {"city": "Agra", "searches": 80},
            ],
        )
    )
    return workspace


@pytest.fixture
def mock_config_manager() -> MagicMock:
    """Create a mock ConfigManager for testing config commands."""
    config = MagicMock()
    config.list_profiles.return_value = [
        ProfileInfo(
            name="prod",
            base_url="https://dash.example.com",
            has_token=True,
            is_default=True,
        ),
        ProfileInfo(
            name="local",
            base_url="http://localhost:3000",
            has_token=False,
            is_default=False,
        ),
    ]
    config.get_profile.return_value = ProfileInfo(
        name="local",
        base_url="http://localhost:3000",
        has_token=False,
        is_default=False,
    )
    config.resolve_settings.return_value = EngineSettings()
    config.set_setting.return_value = EngineSettings(max_concurrent=4)
    return config


@pytest.fixture
def mock_session_store() -> MagicMock:
    """Create a mock SessionStore scoped to one merchant and city."""
    store = MagicMock()
    store.path = Path("/tmp/session.toml")
    store.current = SessionContext(merchant_id="m-1", city_name="Pune")
    store.switch.return_value = SessionContext(
        merchant_id="m-1", city_name="Agra"
    )
    return store


@pytest.fixture
def mock_context() -> typer.Context:
    """Create a mock Typer context with default options."""
    ctx = MagicMock(spec=typer.Context)
    ctx.obj = {
        "profile": None,
        "quiet": False,
        "verbose": False,
        "workspace": None,
        "config": None,
        "session": None,
    }
    return ctx
