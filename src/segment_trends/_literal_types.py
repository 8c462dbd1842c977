"""Shared Literal type aliases for parameter validation.

These types are exported from the public API and can be used by
library consumers for their own type hints.

Example:
    from segment_trends import Dimension, Granularity, Workspace

    async def city_trend(ws: Workspace, granularity: Granularity) -> None:
        dimension: Dimension = "city"
        result = await ws.trend(dimension, granularity=granularity)
"""

from __future__ import annotations

from typing import Literal

# Bucket size for time-series endpoints
Granularity = Literal["hour", "day"]

# Categorical axes a series can be broken down by.
# run_day is synthetic: it is resolved into one-day date ranges.
Dimension = Literal[
    "city",
    "state",
    "vehicle_category",
    "vehicle_sub_category",
    "service_tier",
    "flow_type",
    "trip_tag",
    "user_os_type",
    "user_bundle_version",
    "user_sdk_version",
    "user_backend_app_version",
    "dynamic_pricing_logic_version",
    "pooling_logic_version",
    "pooling_config_version",
    "run_day",
]

# A grid segment role may also be left unassigned
SegmentDimension = Literal[
    "none",
    "city",
    "state",
    "vehicle_category",
    "vehicle_sub_category",
    "service_tier",
    "flow_type",
    "trip_tag",
    "user_os_type",
    "user_bundle_version",
    "user_sdk_version",
    "user_backend_app_version",
    "dynamic_pricing_logic_version",
    "pooling_logic_version",
    "pooling_config_version",
    "run_day",
]

VehicleCategory = Literal["Bike", "Auto", "Cab", "Others", "All", "BookAny"]

# Columns accepted by the grouped endpoint
GroupBy = Literal["city", "merchant_id", "flow_type", "trip_tag", "service_tier"]

OutputFormat = Literal["json", "jsonl", "table", "csv", "plain"]

__all__ = [
    "Dimension",
    "Granularity",
    "GroupBy",
    "OutputFormat",
    "SegmentDimension",
    "VehicleCategory",
]
