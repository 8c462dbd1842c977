"""Shared CLI option definitions.

Reusable Annotated aliases for options that many commands share.
"""

from __future__ import annotations

from typing import Annotated

import typer

from segment_trends._literal_types import OutputFormat

FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format: json, jsonl, table, csv, plain.",
    ),
]

FromOption = Annotated[
    str | None,
    typer.Option("--from", help="Window start (YYYY-MM-DD or YYYY-MM-DD HH:MM:SS)."),
]

ToOption = Annotated[
    str | None,
    typer.Option("--to", help="Window end (YYYY-MM-DD or YYYY-MM-DD HH:MM:SS)."),
]

GranularityOption = Annotated[
    str,
    typer.Option("--granularity", "-g", help="Bucket size: hour or day."),
]

CityOption = Annotated[
    list[str] | None,
    typer.Option("--city", help="City filter. Repeat for several."),
]

MerchantOption = Annotated[
    list[str] | None,
    typer.Option("--merchant", help="BAP merchant id filter. Repeat for several."),
]

VehicleCategoryOption = Annotated[
    str | None,
    typer.Option("--vehicle-category", help="Vehicle category filter."),
]
