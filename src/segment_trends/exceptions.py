"""Exception hierarchy for segment_trends.

All library exceptions inherit from SegmentTrendsError, so callers can
catch every library error with a single except clause and still handle
specific failures (authentication, rate limiting, malformed comparison
windows) individually.

API exceptions carry the originating request and the raw response so a
failed fetch can be inspected or retried without re-deriving its inputs.
"""

from __future__ import annotations

from typing import Any


class SegmentTrendsError(Exception):
    """Base exception for all segment_trends errors.

    All library exceptions inherit from this class, allowing callers to:
    - Catch all library errors: except SegmentTrendsError
    - Handle specific errors: except InvalidPeriodError
    - Serialize errors: error.to_dict()
    """

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code for programmatic handling.
            details: Additional structured data about the error.
        """
        super().__init__(message)
        self._message = message
        self._code = code
        self._details = details or {}

    @property
    def code(self) -> str:
        """Machine-readable error code."""
        return self._code

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return self._message

    @property
    def details(self) -> dict[str, Any]:
        """Additional structured error data."""
        return self._details

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/JSON output.

        Returns:
            Dictionary with keys: code, message, details.
        """
        return {
            "code": self._code,
            "message": self._message,
            "details": self._details,
        }

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self._message

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return (
            f"{self.__class__.__name__}(message={self._message!r}, code={self._code!r})"
        )


# API Exceptions


class APIError(SegmentTrendsError):
    """Base class for metrics backend HTTP errors.

    Exposes the status code, the response body and the request that
    produced it.

    Example:
        ```python
        try:
            await client.time_series(filters, "hour")
        except APIError as e:
            print(f"Status: {e.status_code}")
            print(f"Request params: {e.request_params}")
        ```
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
        code: str = "API_ERROR",
    ) -> None:
        """Initialize APIError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from response.
            response_body: Raw response body (string or parsed dict).
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
            code: Machine-readable error code.
        """
        self._status_code = status_code
        self._response_body = response_body
        self._request_method = request_method
        self._request_url = request_url
        self._request_params = request_params

        details: dict[str, Any] = {"status_code": status_code}
        if response_body is not None:
            details["response_body"] = response_body
        if request_method is not None:
            details["request_method"] = request_method
        if request_url is not None:
            details["request_url"] = request_url
        if request_params is not None:
            details["request_params"] = request_params

        super().__init__(message, code=code, details=details)

    @property
    def status_code(self) -> int:
        """HTTP status code from response."""
        return self._status_code

    @property
    def response_body(self) -> str | dict[str, Any] | None:
        """Raw response body (string or parsed dict)."""
        return self._response_body

    @property
    def request_method(self) -> str | None:
        """HTTP method used."""
        return self._request_method

    @property
    def request_url(self) -> str | None:
        """Full request URL."""
        return self._request_url

    @property
    def request_params(self) -> dict[str, Any] | None:
        """Query parameters sent."""
        return self._request_params


class AuthenticationError(APIError):
    """The metrics backend rejected the dashboard token (HTTP 401)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        status_code: int = 401,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="AUTH_FAILED",
        )


class RateLimitError(APIError):
    """Metrics backend rate limit exceeded (HTTP 429).

    Raised only after the client has exhausted its retries. The
    retry_after property carries the server's Retry-After hint.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int | None = None,
        status_code: int = 429,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        """Initialize RateLimitError.

        Args:
            message: Human-readable error message.
            retry_after: Seconds until retry is allowed (from Retry-After header).
            status_code: HTTP status code (default 429).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
        """
        self._retry_after = retry_after
        if retry_after is not None:
            message = f"{message}. Retry after {retry_after} seconds."

        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="RATE_LIMITED",
        )
        if retry_after is not None:
            self._details["retry_after"] = retry_after

    @property
    def retry_after(self) -> int | None:
        """Seconds until retry is allowed, or None if unknown."""
        return self._retry_after


class QueryError(APIError):
    """The backend rejected the query (HTTP 400, 403 or 404).

    Usually an unknown dimension, an invalid granularity, or a date
    filter the backend could not parse.
    """

    def __init__(
        self,
        message: str = "Query failed",
        *,
        status_code: int = 400,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="QUERY_FAILED",
        )


class ServerError(APIError):
    """The metrics backend failed while executing the query (HTTP 5xx)."""

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int = 500,
        response_body: str | dict[str, Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="SERVER_ERROR",
        )


# Configuration Exceptions


class ConfigError(SegmentTrendsError):
    """Base for configuration-related errors.

    Raised when there's a problem with the config file, the session
    file, environment variables, or credential resolution.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Human-readable error message.
            details: Additional structured data.
        """
        super().__init__(message, code="CONFIG_ERROR", details=details)


class ProfileNotFoundError(ConfigError):
    """Named profile does not exist in configuration.

    The available_profiles property lists valid profile names.
    """

    def __init__(
        self,
        profile_name: str,
        available_profiles: list[str] | None = None,
    ) -> None:
        """Initialize ProfileNotFoundError.

        Args:
            profile_name: The requested profile name that wasn't found.
            available_profiles: List of valid profile names for suggestions.
        """
        available = available_profiles or []
        if available:
            available_str = ", ".join(f"'{p}'" for p in available)
            message = (
                f"Profile '{profile_name}' not found. "
                f"Available profiles: {available_str}"
            )
        else:
            message = f"Profile '{profile_name}' not found. No profiles configured."

        super().__init__(
            message,
            details={
                "profile_name": profile_name,
                "available_profiles": available,
            },
        )
        self._code = "PROFILE_NOT_FOUND"

    @property
    def profile_name(self) -> str:
        """The requested profile name that wasn't found."""
        return str(self._details.get("profile_name", ""))

    @property
    def available_profiles(self) -> list[str]:
        """List of valid profile names."""
        profiles = self._details.get("available_profiles")
        return profiles if isinstance(profiles, list) else []


class ProfileExistsError(ConfigError):
    """Profile name already exists in configuration."""

    def __init__(self, profile_name: str) -> None:
        super().__init__(
            f"Profile '{profile_name}' already exists.",
            details={"profile_name": profile_name},
        )
        self._code = "PROFILE_EXISTS"

    @property
    def profile_name(self) -> str:
        """The conflicting profile name."""
        return str(self._details.get("profile_name", ""))


# Comparison window exceptions


class InvalidPeriodError(SegmentTrendsError):
    """A comparison window boundary could not be parsed or is inverted.

    Raised instead of falling back to a default window.

    Example:
        ```python
        try:
            build_shifted_period("2025-13-01", "2025-13-02")
        except InvalidPeriodError as e:
            print(e.value, e.reason)
        ```
    """

    def __init__(self, value: str, reason: str) -> None:
        """Initialize InvalidPeriodError.

        Args:
            value: The offending boundary (or boundaries) as given.
            reason: Why the value was rejected.
        """
        self._value = value
        self._reason = reason
        super().__init__(
            f"Invalid comparison window {value!r}: {reason}",
            code="INVALID_PERIOD",
            details={"value": value, "reason": reason},
        )

    @property
    def value(self) -> str:
        """The rejected input."""
        return self._value

    @property
    def reason(self) -> str:
        """Why the input was rejected."""
        return self._reason
