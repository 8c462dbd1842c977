"""Axis domains and tick labels for charts.

``nice_domain`` picks a y-axis upper bound that lands on a round step
(1, 2, 5 or 10 times a power of ten) with 15% headroom above the data.
The floor is always 0: every charted metric here is a count or a rate.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from segment_trends._internal.date_utils import parse_datetime

DEFAULT_TICK_COUNT = 5
HEADROOM = 1.15
EMPTY_DOMAIN = (0.0, 100.0)
ZERO_DOMAIN = (0.0, 10.0)


def _strip_noise(value: float) -> float:
    """Drop float noise from products like 0.2 * 6 (12 significant digits)."""
    return float(f"{value:.12g}")


def _flatten(values: Iterable[float | None | Iterable[float | None]]) -> list[float]:
    flat: list[float] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, str):
            raise TypeError(f"Expected numbers, got string {value!r}")
        if isinstance(value, int | float):
            if math.isfinite(value):
                flat.append(float(value))
            continue
        flat.extend(_flatten(value))
    return flat


def nice_step(value_range: float, tick_count: int = DEFAULT_TICK_COUNT) -> float:
    """Snap range / tick_count to 1, 2, 5 or 10 times a power of ten.

    Example:
        ```python
        nice_step(100)  # 20.0
        nice_step(12)   # 2.0  (2.4 snaps to 2 x 10^0)
        ```
    """
    rough = value_range / tick_count
    if rough <= 0 or not math.isfinite(rough):
        return 1.0
    magnitude = 10 ** math.floor(math.log10(rough))
    residual = rough / magnitude
    if residual <= 1.5:
        factor = 1
    elif residual <= 3:
        factor = 2
    elif residual <= 7:
        factor = 5
    else:
        factor = 10
    return float(factor * magnitude)


def nice_domain(
    values: Iterable[float | None | Iterable[float | None]],
    tick_count: int = DEFAULT_TICK_COUNT,
) -> tuple[float, float]:
    """Compute a [0, nice_max] y-axis domain.

    Accepts a flat sample or several series; None, NaN and infinities
    are skipped.

    Returns:
        (0, 100) for an empty sample, (0, 10) when the maximum is not
        positive, otherwise (0, ceil(max * 1.15 / step) * step).

    Example:
        ```python
        nice_domain([0, 0, 0])            # (0.0, 10.0)
        nice_domain([[10, 50], [87]])     # (0.0, 120.0)
        ```
    """
    sample = _flatten(values)
    if not sample:
        return EMPTY_DOMAIN

    high = max(sample)
    low = min(sample)
    if high <= 0:
        return ZERO_DOMAIN

    target = high * HEADROOM
    if not math.isfinite(target):
        return (0.0, high)

    value_range = high - low if high != low else high
    if not math.isfinite(value_range):
        value_range = high
    step = nice_step(value_range, tick_count)
    nice_max = math.ceil(target / step) * step
    if not math.isfinite(nice_max):
        return (0.0, target)
    return (0.0, _strip_noise(nice_max))


def axis_ticks(domain: tuple[float, float], step: float) -> list[float]:
    """Tick positions from domain[0] to domain[1] inclusive."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    count = int(math.floor((domain[1] - domain[0]) / step + 1e-9))
    return [_strip_noise(domain[0] + i * step) for i in range(count + 1)]


def format_axis_value(value: float) -> str:
    """Compact y-axis label: 1.5M, 12K, or a grouped plain number."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.0f}K"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def format_rate_tick(value: float) -> str:
    """Rate y-axis label, e.g. '40%'."""
    return f"{value:.0f}%"


def format_time_tick(timestamp: str | datetime, index: int, granularity: str) -> str:
    """X-axis label for a bucket.

    Daily buckets read 'Jan 5'. Hourly buckets read 'HH:MM', except the
    first tick and each midnight, which read '5 Jan' to mark the day.
    """
    when = timestamp if isinstance(timestamp, datetime) else parse_datetime(timestamp)
    if granularity == "day":
        return f"{when.strftime('%b')} {when.day}"
    if index == 0 or (when.hour == 0 and when.minute == 0):
        return f"{when.day} {when.strftime('%b')}"
    return when.strftime("%H:%M")
