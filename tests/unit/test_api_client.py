"""Unit tests for MetricsAPIClient.

Requests are served by httpx.MockTransport; nothing touches the network.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr

from segment_trends._internal.api_client import API_PREFIX, MetricsAPIClient
from segment_trends._internal.config import Credentials
from segment_trends.exceptions import (
    AuthenticationError,
    QueryError,
    RateLimitError,
    SegmentTrendsError,
    ServerError,
)
from segment_trends.types import ComparisonPeriod, MetricsFilters

ClientFactory = Callable[[Callable[[httpx.Request], httpx.Response]], MetricsAPIClient]


def _json_handler(
    payload: Any, seen: list[httpx.Request] | None = None, status: int = 200
) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload)

    return handler


class TestRequests:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_token_sent_in_token_header(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """The dashboard token travels in a 'token' header."""
        seen: list[httpx.Request] = []
        async with mock_client_factory(_json_handler({"data": []}, seen)) as client:
            await client.filter_options()
        assert seen[0].headers["token"] == "test_token"
        assert seen[0].url.path == f"{API_PREFIX}/filters"

    @pytest.mark.asyncio
    async def test_no_token_header_without_token(self) -> None:
        """Profiles without a token send no token header."""
        seen: list[httpx.Request] = []
        client = MetricsAPIClient(
            Credentials(base_url="http://localhost:3000"),
            _transport=httpx.MockTransport(_json_handler({}, seen)),
        )
        async with client:
            await client.filter_options()
        assert "token" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_dimensional_time_series_params(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """Dimension, granularity and camelCase filters are query params."""
        seen: list[httpx.Request] = []
        filters = MetricsFilters(
            date_from="2025-01-01 00:00:00",
            city=("Pune", "Agra"),
            vehicle_category="Auto",
        )
        async with mock_client_factory(_json_handler({"data": []}, seen)) as client:
            await client.dimensional_time_series("city", "hour", filters)

        params = seen[0].url.params
        assert seen[0].url.path == f"{API_PREFIX}/trend"
        assert params["dimension"] == "city"
        assert params["granularity"] == "hour"
        assert params["dateFrom"] == "2025-01-01 00:00:00"
        assert params["city"] == "Pune,Agra"
        assert params["vehicleCategory"] == "Auto"

    @pytest.mark.asyncio
    async def test_comparison_uses_period_dates(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """The comparison window replaces any date range on the filters."""
        seen: list[httpx.Request] = []
        period = ComparisonPeriod(
            current_from="2025-01-10 00:00:00",
            current_to="2025-01-11 00:00:00",
            previous_from="2025-01-09 00:00:00",
            previous_to="2025-01-10 00:00:00",
        )
        filters = MetricsFilters(date_from="2024-01-01 00:00:00", city=("Pune",))
        async with mock_client_factory(_json_handler({}, seen)) as client:
            await client.comparison(period, filters)

        params = seen[0].url.params
        assert "dateFrom" not in params
        assert params["currentFrom"] == "2025-01-10 00:00:00"
        assert params["previousTo"] == "2025-01-10 00:00:00"
        assert params["city"] == "Pune"

    @pytest.mark.asyncio
    async def test_time_series_and_grouped_endpoints(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """Each method hits its own endpoint."""
        seen: list[httpx.Request] = []
        async with mock_client_factory(_json_handler({"data": []}, seen)) as client:
            await client.time_series(MetricsFilters(), "hour")
            await client.grouped("city", MetricsFilters())

        assert seen[0].url.path == f"{API_PREFIX}/timeseries"
        assert seen[0].url.params["granularity"] == "hour"
        assert seen[1].url.path == f"{API_PREFIX}/grouped"
        assert seen[1].url.params["groupBy"] == "city"

    @pytest.mark.asyncio
    async def test_returns_payload_unchanged(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """Payloads are returned as parsed JSON."""
        payload = {"data": [{"timestamp": "t0", "searches": 1}]}
        async with mock_client_factory(_json_handler(payload)) as client:
            assert await client.time_series(MetricsFilters()) == payload


class TestErrorMapping:
    """Tests for HTTP status to exception mapping."""

    @pytest.mark.asyncio
    async def test_401_raises_authentication_error(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """401 means a bad or expired token."""
        async with mock_client_factory(_json_handler({}, status=401)) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.filter_options()
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 403, 404])
    async def test_client_errors_raise_query_error(
        self, mock_client_factory: ClientFactory, status: int
    ) -> None:
        """400, 403 and 404 are query errors carrying the server's message."""
        handler = _json_handler({"message": "bad dimension"}, status=status)
        async with mock_client_factory(handler) as client:
            with pytest.raises(QueryError, match="bad dimension") as exc_info:
                await client.dimensional_time_series("x", "day", MetricsFilters())
        assert exc_info.value.status_code == status
        assert exc_info.value.request_params is not None
        assert exc_info.value.request_params["dimension"] == "x"

    @pytest.mark.asyncio
    async def test_5xx_raises_server_error(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """5xx responses are server errors."""
        async with mock_client_factory(
            _json_handler({"error": "db down"}, status=503)
        ) as client:
            with pytest.raises(ServerError, match="db down"):
                await client.time_series(MetricsFilters())

    @pytest.mark.asyncio
    async def test_non_json_success_raises(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """A 200 that is not JSON is an invalid response."""

        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>login</html>")

        async with mock_client_factory(handler) as client:
            with pytest.raises(SegmentTrendsError) as exc_info:
                await client.filter_options()
        assert exc_info.value.code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """Connection failures become SegmentTrendsError(HTTP_ERROR)."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client_factory(handler) as client:
            with pytest.raises(SegmentTrendsError) as exc_info:
                await client.filter_options()
        assert exc_info.value.code == "HTTP_ERROR"


class TestRateLimitRetry:
    """Tests for 429 retry behavior."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, mock_credentials: Credentials) -> None:
        """A 429 followed by a 200 succeeds after waiting Retry-After."""
        responses = [
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json={"ok": True}),
        ]

        def handler(_request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        client = MetricsAPIClient(
            mock_credentials,
            max_retries=2,
            _transport=httpx.MockTransport(handler),
        )
        with patch(
            "segment_trends._internal.api_client.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            async with client:
                assert await client.filter_options() == {"ok": True}
        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(
        self, mock_credentials: Credentials
    ) -> None:
        """Persistent 429s raise RateLimitError with the Retry-After hint."""

        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "7"})

        client = MetricsAPIClient(
            mock_credentials,
            max_retries=1,
            _transport=httpx.MockTransport(handler),
        )
        with patch(
            "segment_trends._internal.api_client.asyncio.sleep", new=AsyncMock()
        ):
            async with client:
                with pytest.raises(RateLimitError) as exc_info:
                    await client.filter_options()
        assert exc_info.value.retry_after == 7

    def test_backoff_grows_and_caps(self, mock_credentials: Credentials) -> None:
        """Backoff doubles per attempt and is capped at 60s plus jitter."""
        client = MetricsAPIClient(mock_credentials)
        assert 1.0 <= client._calculate_backoff(0) <= 1.1
        assert 4.0 <= client._calculate_backoff(2) <= 4.4
        assert 60.0 <= client._calculate_backoff(10) <= 66.0


class TestLifecycle:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(
        self, mock_client_factory: ClientFactory
    ) -> None:
        """Closing twice is safe."""
        client = mock_client_factory(_json_handler({}))
        await client.filter_options()
        await client.aclose()
        await client.aclose()

    def test_base_url_from_credentials(self) -> None:
        """The base URL is the credentials' origin."""
        client = MetricsAPIClient(
            Credentials(base_url="https://x.example.com/", token=SecretStr("t"))
        )
        assert client.base_url == "https://x.example.com"
