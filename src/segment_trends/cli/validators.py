"""CLI parameter validators.

Validates string inputs from Typer against the Literal aliases and the
metric registry before they reach the Workspace, so a typo exits with
INVALID_ARGS and the list of valid values instead of a backend error.
"""

from __future__ import annotations

from typing import Any, cast, get_args

import typer

from segment_trends._internal.services.derived_metrics import METRICS
from segment_trends._literal_types import (
    Dimension,
    Granularity,
    GroupBy,
    SegmentDimension,
    VehicleCategory,
)
from segment_trends.cli.utils import ExitCode, err_console


def _reject(value: str, param_name: str, valid_values: tuple[str, ...]) -> None:
    err_console.print(f"[red]Error:[/red] Invalid value for {param_name}: '{value}'")
    err_console.print(f"Valid options: {', '.join(valid_values)}")
    raise typer.Exit(ExitCode.INVALID_ARGS)


def validate_literal(value: str, literal_type: Any, param_name: str) -> Any:
    """Validate a CLI string against a Literal type.

    Raises:
        typer.Exit: With code 3 (INVALID_ARGS) if invalid.
    """
    valid_values = get_args(literal_type)
    if value not in valid_values:
        _reject(value, param_name, valid_values)
    return value


def validate_granularity(value: str, param_name: str = "--granularity") -> Granularity:
    """Validate a bucket size ('hour' or 'day')."""
    validate_literal(value, Granularity, param_name)
    return cast(Granularity, value)


def validate_dimension(value: str, param_name: str = "--dimension") -> Dimension:
    validate_literal(value, Dimension, param_name)
    return cast(Dimension, value)


def validate_segment_dimension(
    value: str, param_name: str = "--line"
) -> SegmentDimension:
    """Validate a grid segment dimension; 'none' leaves the role unused."""
    validate_literal(value, SegmentDimension, param_name)
    return cast(SegmentDimension, value)


def validate_group_by(value: str, param_name: str = "--by") -> GroupBy:
    validate_literal(value, GroupBy, param_name)
    return cast(GroupBy, value)


def validate_vehicle_category(
    value: str | None, param_name: str = "--vehicle-category"
) -> VehicleCategory | None:
    if value is None:
        return None
    validate_literal(value, VehicleCategory, param_name)
    return cast(VehicleCategory, value)


def validate_metric(value: str, param_name: str = "--metric") -> str:
    """Validate a metric key against the metric registry."""
    if value not in METRICS:
        _reject(value, param_name, tuple(METRICS))
    return value
