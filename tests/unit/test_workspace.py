"""Unit tests for the Workspace facade.

Requests are served by httpx.MockTransport through an injected client;
config and session state live in temporary files.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from segment_trends import Workspace
from segment_trends._internal.api_client import MetricsAPIClient
from segment_trends._internal.config import ConfigManager, Credentials, EngineSettings
from segment_trends._internal.session import SessionStore
from segment_trends.exceptions import ConfigError, InvalidPeriodError
from segment_trends.types import MetricsFilters, SegmentSpec

ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], MetricsAPIClient]

TREND_ROWS: dict[str, list[dict[str, Any]]] = {
    "city": [
        {"timestamp": "2025-01-01", "dimensionValue": "Pune", "searches": 100},
        {"timestamp": "2025-01-01", "dimensionValue": "Agra", "searches": 80},
        {"timestamp": "2025-01-01", "dimensionValue": "Goa", "searches": 50},
    ],
    "vehicle_category": [
        {"timestamp": "2025-01-01", "dimensionValue": "Auto", "searches": 90},
        {"timestamp": "2025-01-01", "dimensionValue": "Cab", "searches": 70},
    ],
}


class Backend:
    """Routes mock requests by endpoint and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.rsplit("/", 1)[-1]
        if path == "trend":
            dimension = request.url.params["dimension"]
            return httpx.Response(200, json={"data": TREND_ROWS.get(dimension, [])})
        if path == "filters":
            return httpx.Response(200, json={"cities": ["Pune"]})
        if path == "timeseries":
            return httpx.Response(200, json={"data": []})
        return httpx.Response(200, json={})

    def params(self, endpoint: str) -> list[httpx.QueryParams]:
        return [
            r.url.params for r in self.requests if r.url.path.endswith(endpoint)
        ]


@pytest.fixture
def backend() -> Backend:
    """Fresh mock backend."""
    return Backend()


@pytest.fixture
def mock_config(mock_credentials: Credentials) -> MagicMock:
    """ConfigManager returning test credentials and a top-N of 2."""
    config = MagicMock(spec=ConfigManager)
    config.resolve_credentials.return_value = mock_credentials
    config.resolve_settings.return_value = EngineSettings(default_top_n=2)
    return config


@pytest.fixture
def workspace_factory(
    mock_config: MagicMock,
    session_store: SessionStore,
    mock_client_factory: ClientFactory,
    backend: Backend,
) -> Callable[..., Workspace]:
    """Build Workspaces wired to the mock backend."""

    def factory(profile: str | None = None) -> Workspace:
        return Workspace(
            profile,
            _config_manager=mock_config,
            _api_client=mock_client_factory(backend),
            _session_store=session_store,
        )

    return factory


class TestConstruction:
    """Tests for Workspace construction."""

    def test_resolves_profile_and_settings(
        self, workspace_factory: Callable[..., Workspace], mock_config: MagicMock
    ) -> None:
        """The named profile is resolved once, along with settings."""
        ws = workspace_factory("staging")
        mock_config.resolve_credentials.assert_called_once_with("staging")
        assert ws.credentials.base_url == "https://dash.example.com"
        assert ws.settings.default_top_n == 2
        assert ws.session is None
        assert ws.latest_grid is None

    def test_no_credentials(self, config_path: Path, session_path: Path) -> None:
        """An empty config fails fast with ConfigError."""
        with pytest.raises(ConfigError):
            Workspace(
                _config_manager=ConfigManager(config_path),
                _session_store=SessionStore(session_path),
            )

    def test_loads_existing_session(
        self,
        workspace_factory: Callable[..., Workspace],
        session_path: Path,
    ) -> None:
        """A persisted session is loaded at startup."""
        SessionStore(session_path).switch(city_name="Pune")
        assert workspace_factory().session is not None

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(
        self, mock_config: MagicMock, session_store: SessionStore
    ) -> None:
        """Leaving the async context closes the HTTP client."""
        client = MagicMock(spec=MetricsAPIClient)
        client.aclose = AsyncMock()
        async with Workspace(
            _config_manager=mock_config,
            _api_client=client,
            _session_store=session_store,
        ):
            pass
        client.aclose.assert_awaited_once()


class TestSegmentTrends:
    """Tests for trend, rank and grid operations."""

    @pytest.mark.asyncio
    async def test_rank_uses_default_top_n(
        self, workspace_factory: Callable[..., Workspace]
    ) -> None:
        """Without top_n, the configured default applies."""
        async with workspace_factory() as ws:
            assert await ws.rank("city") == ["Pune", "Agra"]
            assert await ws.rank("city", top_n=3) == ["Pune", "Agra", "Goa"]

    @pytest.mark.asyncio
    async def test_session_scopes_requests(
        self,
        workspace_factory: Callable[..., Workspace],
        session_store: SessionStore,
        backend: Backend,
    ) -> None:
        """A non-admin session restricts merchant and city."""
        session_store.switch(merchant_id="m-1", city_name="Pune")
        async with workspace_factory() as ws:
            await ws.trend("vehicle_category")
            await ws.trend("vehicle_category", filters=MetricsFilters(city=("Agra",)))

        first, second = backend.params("/trend")
        assert first["bapMerchantId"] == "m-1"
        assert first["city"] == "Pune"
        assert second["city"] == "Agra"

    @pytest.mark.asyncio
    async def test_trend_cached_until_cleared(
        self, workspace_factory: Callable[..., Workspace], backend: Backend
    ) -> None:
        """Repeated trends are served from cache until clear_cache()."""
        async with workspace_factory() as ws:
            await ws.trend("city")
            await ws.trend("city")
            assert len(backend.requests) == 1
            ws.clear_cache()
            await ws.trend("city")
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_segment_grid(
        self, workspace_factory: Callable[..., Workspace], backend: Backend
    ) -> None:
        """A city x vehicle grid fetches one ranking plus one series per column."""
        async with workspace_factory() as ws:
            grid = await ws.segment_grid(
                SegmentSpec("city", top_n=2),
                column=SegmentSpec("vehicle_category", top_n=2),
            )

        assert grid.column_values == ["Auto", "Cab"]
        assert grid.line_values == ["Pune", "Agra"]
        cell_categories = sorted(
            p["vehicleCategory"]
            for p in backend.params("/trend")
            if "vehicleCategory" in p
        )
        assert cell_categories == ["Auto", "Cab"]

    @pytest.mark.asyncio
    async def test_refresh_records_latest(
        self,
        workspace_factory: Callable[..., Workspace],
        session_store: SessionStore,
    ) -> None:
        """refresh() scopes the config and exposes the latest grid."""
        session_store.switch(city_name="Pune")
        async with workspace_factory() as ws:
            config = ws.grid_config(SegmentSpec("city"))
            assert config.filters.city == ("Pune",)
            grid = await ws.refresh(config)
            assert grid is not None
            assert ws.latest_grid is grid


class TestLiveAndComparison:
    """Tests for live, comparison and metadata operations."""

    @pytest.mark.asyncio
    async def test_kpis_fetch_three_windows(
        self, workspace_factory: Callable[..., Workspace], backend: Backend
    ) -> None:
        """KPIs fetch today, yesterday and last week hourly."""
        async with workspace_factory() as ws:
            results = await ws.kpis(["searches"], now=datetime(2025, 1, 10, 9))

        assert [k.key for k in results] == ["searches"]
        assert results[0].change_vs_yesterday is None
        params = backend.params("/timeseries")
        assert len(params) == 3
        assert {p["granularity"] for p in params} == {"hour"}

    @pytest.mark.asyncio
    async def test_live_comparison_empty(
        self, workspace_factory: Callable[..., Workspace]
    ) -> None:
        """No hourly data yields no rows and zero totals."""
        async with workspace_factory() as ws:
            result = await ws.live("conversion", now=datetime(2025, 1, 10, 9))
        assert result.rows == []
        assert result.totals == {"today": 0.0, "yesterday": 0.0, "last_week": 0.0}

    @pytest.mark.asyncio
    async def test_compare_rejects_bad_window(
        self, workspace_factory: Callable[..., Workspace], backend: Backend
    ) -> None:
        """An inverted window raises before any request."""
        async with workspace_factory() as ws:
            with pytest.raises(InvalidPeriodError):
                await ws.compare("2025-01-11", "2025-01-10")
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_filter_options(
        self, workspace_factory: Callable[..., Workspace]
    ) -> None:
        """Filter metadata passes through the comparison service."""
        async with workspace_factory() as ws:
            options = await ws.filter_options()
        assert options.cities == ["Pune"]
