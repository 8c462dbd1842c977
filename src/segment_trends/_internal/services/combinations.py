"""Query plan for a segment grid.

Expands the resolved column (middle) and row (outer) segment values into
one QueryCombination per grid cell, and translates each combination into
the filter overrides used to fetch that cell's series.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from segment_trends._internal.date_utils import day_range
from segment_trends.types import (
    LIST_FILTER_PARAMS,
    MetricsFilters,
    QueryCombination,
)

_logger = logging.getLogger(__name__)

ALL_VALUE = "All"
RUN_DAY = "run_day"

# Dimensions filtered by a single scalar value rather than a list
_SCALAR_DIMENSIONS = frozenset({"vehicle_category", "vehicle_sub_category"})


def generate_combinations(
    column_values: Sequence[str],
    row_values: Sequence[str],
    *,
    column_is_none: bool,
    row_is_none: bool,
) -> list[QueryCombination]:
    """Build the flat list of cells to fetch.

    Rules:
    - Column segment unused: a single ('All', None) combination.
    - Both segments resolved: the full cross product, row-major
      (every column for the first row, then the next row).
    - Otherwise: one combination per column value with no row value.

    A used column segment that resolved to no values yields no
    combinations.

    Example:
        ```python
        generate_combinations(["A", "B"], [], column_is_none=False, row_is_none=True)
        # [QueryCombination('A', None), QueryCombination('B', None)]
        ```
    """
    if column_is_none:
        return [QueryCombination(column_value=ALL_VALUE, row_value=None)]

    if not row_is_none and row_values:
        return [
            QueryCombination(column_value=column, row_value=row)
            for row in row_values
            for column in column_values
        ]

    return [QueryCombination(column_value=column) for column in column_values]


def dimension_override(dimension: str, value: str) -> dict[str, Any]:
    """Filter fields that restrict a query to one dimension value.

    Categorical dimensions become an equality filter; run_day becomes a
    one-day date range. Unknown dimensions produce no override.

    Raises:
        InvalidPeriodError: If a run_day value is not a YYYY-MM-DD date.
    """
    if dimension == RUN_DAY:
        date_from, date_to = day_range(value)
        return {"date_from": date_from, "date_to": date_to}
    if dimension in _SCALAR_DIMENSIONS:
        return {dimension: value}
    if dimension in LIST_FILTER_PARAMS:
        return {dimension: (value,)}
    _logger.warning("No filter mapping for dimension %r; value ignored", dimension)
    return {}


def apply_combination(
    base: MetricsFilters,
    combination: QueryCombination,
    *,
    column_dimension: str,
    row_dimension: str,
) -> MetricsFilters:
    """Layer a combination's overrides on top of the base filters.

    The 'All' placeholder column and a missing row value leave the base
    filters untouched.
    """
    changes: dict[str, Any] = {}
    if column_dimension != "none":
        changes.update(dimension_override(column_dimension, combination.column_value))
    if combination.row_value is not None and row_dimension != "none":
        changes.update(dimension_override(row_dimension, combination.row_value))
    return base.replace(**changes) if changes else base
