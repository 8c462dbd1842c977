"""Comparison window arithmetic.

Builds the previous-period window for arbitrary current-vs-previous
comparisons, and the fixed today / yesterday / same-day-last-week windows
used by live dashboards. All boundaries are naive local date-times
formatted as 'YYYY-MM-DD HH:MM:SS', since comparisons may be hourly.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from segment_trends.exceptions import InvalidPeriodError
from segment_trends.types import ComparisonPeriod, FixedWindows, TimeWindow

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


def parse_datetime(value: str) -> datetime:
    """Parse a window boundary.

    Accepts 'YYYY-MM-DD HH:MM:SS', the ISO 'T' form, or a bare date
    (read as midnight).

    Args:
        value: Boundary string.

    Returns:
        Naive datetime.

    Raises:
        InvalidPeriodError: If the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidPeriodError(str(value), "expected a date or date-time string")
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidPeriodError(
            value, "expected YYYY-MM-DD or YYYY-MM-DD HH:MM:SS"
        ) from e


def format_datetime(value: datetime) -> str:
    """Format as 'YYYY-MM-DD HH:MM:SS'."""
    return value.strftime(DATETIME_FORMAT)


def build_shifted_period(from_ts: str, to_ts: str) -> ComparisonPeriod:
    """Build the equal-length window immediately preceding [from_ts, to_ts].

    The shift is the exact duration of the current window, not a
    calendar unit.

    Args:
        from_ts: Current window start.
        to_ts: Current window end.

    Returns:
        ComparisonPeriod with all four boundaries as full date-times.

    Raises:
        InvalidPeriodError: If either boundary cannot be parsed, or the
            window ends before it starts.

    Example:
        ```python
        period = build_shifted_period("2025-01-10 00:00:00", "2025-01-11 00:00:00")
        period.previous_from  # '2025-01-09 00:00:00'
        period.previous_to    # '2025-01-10 00:00:00'
        ```
    """
    start = parse_datetime(from_ts)
    end = parse_datetime(to_ts)
    if end < start:
        raise InvalidPeriodError(
            f"{from_ts} .. {to_ts}", "window ends before it starts"
        )

    duration = end - start
    return ComparisonPeriod(
        current_from=format_datetime(start),
        current_to=format_datetime(end),
        previous_from=format_datetime(start - duration),
        previous_to=format_datetime(end - duration),
    )


def _day_window(label: str, day: date) -> TimeWindow:
    date_from, date_to = day_range(day.strftime(DATE_FORMAT))
    return TimeWindow(label=label, date_from=date_from, date_to=date_to)


def build_fixed_windows(now: datetime | None = None) -> FixedWindows:
    """Build today, yesterday and same-day-last-week windows.

    Each window spans 00:00:00 to 23:59:59 of its calendar day.

    Args:
        now: Reference time. Defaults to the current local time.

    Returns:
        FixedWindows labelled 'today', 'yesterday' and 'last_week'.
    """
    today = (now or datetime.now()).date()
    return FixedWindows(
        today=_day_window("today", today),
        yesterday=_day_window("yesterday", today - timedelta(days=1)),
        last_week=_day_window("last_week", today - timedelta(days=7)),
    )


def day_range(day: str) -> tuple[str, str]:
    """Return the full-day ('{day} 00:00:00', '{day} 23:59:59') range.

    Raises:
        InvalidPeriodError: If day is not a valid YYYY-MM-DD date.
    """
    try:
        parsed = date.fromisoformat(day)
    except (TypeError, ValueError) as e:
        raise InvalidPeriodError(str(day), "expected YYYY-MM-DD") from e
    iso = parsed.strftime(DATE_FORMAT)
    return (f"{iso} 00:00:00", f"{iso} 23:59:59")


def infer_granularity(date_from: str, date_to: str) -> str:
    """Return 'hour' when both boundaries fall on one calendar day, else 'day'."""
    if parse_datetime(date_from).date() == parse_datetime(date_to).date():
        return "hour"
    return "day"
