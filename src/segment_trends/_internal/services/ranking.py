"""Top-N ranking of dimension values by weighted volume.

A value's score is the sum over its points of
``searches + completed_rides * RIDE_WEIGHT``. Completed rides are the
scarcer event, so they dominate the score.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from segment_trends.types import DimensionalPoint, SegmentSpec

RIDE_WEIGHT = 10
RUN_DAY = "run_day"


def volume_score(point: DimensionalPoint) -> float:
    """Weighted volume of one point."""
    return point.searches + point.completed_rides * RIDE_WEIGHT


def score_values(points: Iterable[DimensionalPoint]) -> dict[str, float]:
    """Accumulate scores per dimension value, in first-seen order."""
    scores: dict[str, float] = {}
    for point in points:
        key = point.dimension_value
        scores[key] = scores.get(key, 0.0) + volume_score(point)
    return scores


def rank_top_n(
    points: Iterable[DimensionalPoint],
    top_n: int,
    custom_values: Sequence[str] | None = None,
) -> list[str]:
    """Return up to top_n dimension values, highest score first.

    Ties keep first-seen order. Non-empty custom_values are returned
    verbatim, in caller order, without scoring.

    Args:
        points: Dimensional points for a single dimension.
        top_n: Maximum number of values to return.
        custom_values: Explicit value set overriding the ranking.

    Returns:
        Ranked values. Empty input yields an empty list.

    Raises:
        ValueError: If top_n is not positive.

    Example:
        ```python
        rank_top_n(points, 2)  # ['Bangalore', 'Chennai']
        ```
    """
    if custom_values:
        return list(custom_values)
    if top_n < 1:
        raise ValueError(f"top_n must be positive, got {top_n}")

    scores = score_values(points)
    # sorted() is stable, so equal scores keep insertion (first-seen) order
    ranked = sorted(scores.items(), key=lambda item: -item[1])
    return [value for value, _ in ranked[:top_n]]


def order_values(dimension: str, values: list[str]) -> list[str]:
    """Order resolved values for display.

    Run days read chronologically, so they sort by date string; other
    dimensions keep their ranked (or caller-given) order.
    """
    if dimension == RUN_DAY:
        return sorted(values)
    return values


def resolve_segment(
    spec: SegmentSpec,
    points: Iterable[DimensionalPoint] = (),
) -> list[str]:
    """Resolve a segment axis to its ordered values.

    Unused axes resolve to no values. Axes with custom values never look
    at points.
    """
    if spec.is_none:
        return []
    if spec.has_custom_values:
        values = list(spec.custom_values)
    else:
        values = rank_top_n(points, spec.top_n)
    return order_values(spec.dimension, values)
