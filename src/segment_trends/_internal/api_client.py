"""Metrics backend API client.

Low-level asynchronous HTTP client for the master-conversion metrics
endpoints. Handles:
- Dashboard token authentication
- Automatic rate limit handling with exponential backoff
- Mapping HTTP failures onto the exception hierarchy

This is a private implementation detail. Users should use the Workspace
class or the service layer instead of accessing this module directly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import TYPE_CHECKING, Any

import httpx

from segment_trends._internal.config import Credentials
from segment_trends.exceptions import (
    AuthenticationError,
    QueryError,
    RateLimitError,
    SegmentTrendsError,
    ServerError,
)

if TYPE_CHECKING:
    from types import TracebackType

    from segment_trends.types import ComparisonPeriod, MetricsFilters

logger = logging.getLogger(__name__)

API_PREFIX = "/api/master-conversion"

# Endpoint paths relative to API_PREFIX
ENDPOINTS: dict[str, str] = {
    "comparison": "/comparison",
    "timeseries": "/timeseries",
    "trend": "/trend",
    "filters": "/filters",
    "grouped": "/grouped",
}


def _error_message(response_body: str | dict[str, Any] | None, default: str) -> str:
    """Pull the most specific message out of an error body."""
    if isinstance(response_body, dict):
        message = response_body.get("message") or response_body.get("error")
        return str(message) if message else default
    if isinstance(response_body, str) and response_body:
        return response_body[:200]
    return default


class MetricsAPIClient:
    """Async HTTP client for the metrics backend.

    Every method returns the parsed JSON payload unchanged; parsing into
    result types happens in the service layer.

    Example:
        ```python
        from segment_trends._internal.config import ConfigManager
        from segment_trends._internal.api_client import MetricsAPIClient

        credentials = ConfigManager().resolve_credentials()

        async with MetricsAPIClient(credentials) as client:
            payload = await client.dimensional_time_series("city", "day", filters)
        ```
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            credentials: Immutable backend credentials.
            timeout: Request timeout in seconds.
            max_retries: Maximum retry attempts for rate-limited requests.
            _transport: Internal parameter for testing with MockTransport.
        """
        self._credentials = credentials
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None
        self._transport = _transport

    @property
    def base_url(self) -> str:
        """Backend origin from credentials."""
        return self._credentials.base_url

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._credentials.token is not None:
            headers["token"] = self._credentials.token.get_secret_value()
        return headers

    def _build_url(self, endpoint: str) -> str:
        return f"{self._credentials.base_url}{API_PREFIX}{ENDPOINTS[endpoint]}"

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> MetricsAPIClient:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _handle_response(
        self,
        response: httpx.Response,
        *,
        request_method: str,
        request_url: str,
        request_params: dict[str, Any] | None,
    ) -> Any:
        """Parse a response, raising on error statuses.

        Status code handling:
            - 200-299: Parse and return JSON response
            - 401: AuthenticationError
            - 400, 403, 404: QueryError
            - 5xx: ServerError

        Note: 429 is handled in _execute_with_retry.

        Raises:
            AuthenticationError: On 401 response.
            QueryError: On 400, 403 or 404 response.
            ServerError: On 5xx response.
            SegmentTrendsError: If a successful response is not JSON.
        """
        response_body: str | dict[str, Any] | None = None
        try:
            response_body = response.json()
        except json.JSONDecodeError:
            response_body = response.text[:500] if response.text else None

        context: dict[str, Any] = {
            "status_code": response.status_code,
            "response_body": response_body,
            "request_method": request_method,
            "request_url": request_url,
            "request_params": request_params,
        }

        if response.status_code == 401:
            raise AuthenticationError(
                "Invalid or expired dashboard token.",
                **context,
            )
        if response.status_code == 403:
            raise QueryError(
                _error_message(response_body, "Permission denied"), **context
            )
        if response.status_code == 404:
            raise QueryError(
                _error_message(response_body, "Resource not found"), **context
            )
        if response.status_code == 400:
            raise QueryError(
                _error_message(response_body, "Invalid query"), **context
            )
        if response.status_code >= 500:
            raise ServerError(
                "Server error: "
                + _error_message(response_body, str(response.status_code)),
                **context,
            )
        response.raise_for_status()

        if isinstance(response_body, dict | list):
            return response_body
        raise SegmentTrendsError(
            "Backend returned a non-JSON response",
            code="INVALID_RESPONSE",
            details={"request_url": request_url, "body": response_body},
        )

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff delay with jitter.

        Formula: min(1.0 * 2^attempt, 60.0) + random(0, delay * 0.1)

        Args:
            attempt: Zero-based attempt number.

        Returns:
            Delay in seconds including jitter.
        """
        delay: float = min(1.0 * (2**attempt), 60.0)
        jitter: float = random.uniform(0, delay * 0.1)  # noqa: S311
        return delay + jitter

    def _parse_retry_after(self, response: httpx.Response) -> int | None:
        """Return the Retry-After header in seconds, or None."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return int(retry_after)
            except ValueError:
                pass
        return None

    async def _execute_with_retry(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a request, retrying HTTP 429 with backoff.

        Raises:
            AuthenticationError: Invalid token (401).
            RateLimitError: Rate limit exceeded after max retries (429).
            QueryError: Invalid parameters (400, 403, 404).
            ServerError: Server-side errors (5xx).
            SegmentTrendsError: Network/connection errors (code HTTP_ERROR).
        """
        client = self._ensure_client()

        for attempt in range(self._max_retries + 1):
            try:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    headers=self._get_headers(),
                )
            except httpx.HTTPError as e:
                raise SegmentTrendsError(
                    f"HTTP error: {e}",
                    code="HTTP_ERROR",
                    details={
                        "error": str(e),
                        "request_method": method,
                        "request_url": url,
                        "request_params": params,
                    },
                ) from e

            if response.status_code == 429:
                retry_after = self._parse_retry_after(response)
                if attempt >= self._max_retries:
                    raise RateLimitError(
                        "Rate limit exceeded after max retries",
                        retry_after=retry_after,
                        response_body=response.text[:500] or None,
                        request_method=method,
                        request_url=url,
                        request_params=params,
                    )
                wait_time = (
                    float(retry_after)
                    if retry_after is not None
                    else self._calculate_backoff(attempt)
                )
                logger.warning(
                    "Rate limited, retrying in %.1f seconds (attempt %d/%d)",
                    wait_time,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(wait_time)
                continue

            return self._handle_response(
                response,
                request_method=method,
                request_url=url,
                request_params=params,
            )

        raise RateLimitError(
            "Rate limit exceeded after max retries",
            request_method=method,
            request_url=url,
            request_params=params,
        )

    async def _get(self, endpoint: str, params: dict[str, Any]) -> Any:
        url = self._build_url(endpoint)
        logger.debug("GET %s params=%s", url, params)
        return await self._execute_with_retry("GET", url, params=params)

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def time_series(
        self,
        filters: MetricsFilters,
        granularity: str = "day",
    ) -> dict[str, Any]:
        """Fetch the undimensioned time series.

        Returns:
            Payload with a 'data' list of
            {date, searches, searchForQuotes, ..., earnings} rows.
        """
        params = {**filters.to_params(), "granularity": granularity}
        result: dict[str, Any] = await self._get("timeseries", params)
        return result

    async def dimensional_time_series(
        self,
        dimension: str,
        granularity: str,
        filters: MetricsFilters,
    ) -> dict[str, Any]:
        """Fetch a series broken down by dimension.

        Returns:
            Payload with a 'data' list of
            {timestamp, dimensionValue, <counters>} rows.
        """
        params = {
            **filters.to_params(),
            "dimension": dimension,
            "granularity": granularity,
        }
        result: dict[str, Any] = await self._get("trend", params)
        return result

    async def comparison(
        self,
        period: ComparisonPeriod,
        filters: MetricsFilters,
    ) -> dict[str, Any]:
        """Fetch current and previous period totals with their changes.

        The date range comes from period; any date range on filters is
        ignored.
        """
        params = {
            **filters.replace(date_from=None, date_to=None).to_params(),
            **period.to_params(),
        }
        result: dict[str, Any] = await self._get("comparison", params)
        return result

    async def filter_options(self) -> dict[str, Any]:
        """Fetch the values available for each filter."""
        result: dict[str, Any] = await self._get("filters", {})
        return result

    async def grouped(
        self,
        group_by: str,
        filters: MetricsFilters,
    ) -> dict[str, Any]:
        """Fetch totals grouped by one column."""
        params = {**filters.to_params(), "groupBy": group_by}
        result: dict[str, Any] = await self._get("grouped", params)
        return result
