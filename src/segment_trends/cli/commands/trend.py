"""Trend commands.

- rank: Top values of a dimension by volume
- grid: Multi-segment grid of small-multiple series
- compare: Window vs. the equal-length window before it
- live: Today vs. yesterday vs. last week, by hour, or headline KPIs
- filters: Values available for each filter
- grouped: Totals grouped by one column
- axis: Nice y-axis domain and ticks for a set of values
"""

from __future__ import annotations

from typing import Annotated, Any

import typer

from segment_trends._internal.date_utils import day_range, infer_granularity
from segment_trends._internal.services.axis import (
    DEFAULT_TICK_COUNT,
    axis_ticks,
    format_axis_value,
    format_rate_tick,
    nice_domain,
    nice_step,
)
from segment_trends._internal.services.grid import NO_DATA_MESSAGE
from segment_trends._internal.services.live_metrics import DEFAULT_KPI_METRICS
from segment_trends.cli.options import (
    CityOption,
    FormatOption,
    FromOption,
    GranularityOption,
    MerchantOption,
    ToOption,
    VehicleCategoryOption,
)
from segment_trends.cli.utils import (
    ExitCode,
    console,
    err_console,
    get_workspace,
    handle_errors,
    output_result,
    run_async,
    status_spinner,
)
from segment_trends.cli.validators import (
    validate_dimension,
    validate_granularity,
    validate_group_by,
    validate_metric,
    validate_segment_dimension,
    validate_vehicle_category,
)
from segment_trends.types import Grid, MetricsFilters, SegmentSpec

trend_app = typer.Typer(
    name="trend",
    help="Rank, segment and compare metrics.",
    epilog="""Segments:
  rank, grid

Periods:
  compare, live

Metadata:
  filters, grouped, axis""",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


def _boundary(value: str | None, *, end: bool) -> str | None:
    """Expand a bare date to the start or end of that day."""
    if value is None or len(value) != 10:
        return value
    start, stop = day_range(value)
    return stop if end else start


def _build_filters(
    date_from: str | None,
    date_to: str | None,
    city: list[str] | None,
    merchant: list[str] | None,
    vehicle_category: str | None,
) -> MetricsFilters:
    return MetricsFilters(
        date_from=_boundary(date_from, end=False),
        date_to=_boundary(date_to, end=True),
        city=tuple(city) if city else None,
        bap_merchant_id=tuple(merchant) if merchant else None,
        vehicle_category=validate_vehicle_category(vehicle_category),
    )


def _resolve_granularity(value: str | None, filters: MetricsFilters) -> str:
    """Explicit granularity, else hourly for a single-day window."""
    if value is not None:
        return validate_granularity(value)
    if filters.date_from and filters.date_to:
        return infer_granularity(filters.date_from, filters.date_to)
    return "day"


def _grid_records(grid: Grid) -> list[dict[str, Any]]:
    """Long-form rows for table/csv output; failed cells keep one error row."""
    records: list[dict[str, Any]] = []
    for row in grid.cells:
        for cell in row:
            if cell.error is not None:
                records.append(
                    {
                        "row": cell.row_value,
                        "column": cell.column_value,
                        "error": cell.error,
                    }
                )
                continue
            for line, values in cell.series.items():
                records.extend(
                    {
                        "row": cell.row_value,
                        "column": cell.column_value,
                        "line": line,
                        "timestamp": point.timestamp,
                        "value": point.value,
                    }
                    for point in values
                )
    return records


@trend_app.command("rank")
@handle_errors
def trend_rank(
    ctx: typer.Context,
    dimension: Annotated[str, typer.Argument(help="Dimension to rank, e.g. city.")],
    top: Annotated[
        int | None,
        typer.Option("--top", "-n", help="How many values to keep."),
    ] = None,
    values: Annotated[
        list[str] | None,
        typer.Option("--value", help="Explicit values; skips ranking. Repeatable."),
    ] = None,
    date_from: FromOption = None,
    date_to: ToOption = None,
    granularity: GranularityOption = "day",
    city: CityOption = None,
    merchant: MerchantOption = None,
    vehicle_category: VehicleCategoryOption = None,
    format: FormatOption = "json",
) -> None:
    """Rank dimension values by volume.

    Volume is searches plus ten times completed rides, summed over the
    window. Ties keep the order the backend returned them in.

    Examples:

        segtrend trend rank city --top 5 --from 2025-01-01 --to 2025-01-07
        segtrend trend rank vehicle_category --format plain
    """
    validated_dimension = validate_dimension(dimension, "DIMENSION")
    validated_granularity = validate_granularity(granularity)
    filters = _build_filters(date_from, date_to, city, merchant, vehicle_category)
    workspace = get_workspace(ctx)

    with status_spinner(ctx, f"Ranking {validated_dimension}..."):
        ranked = run_async(
            workspace,
            workspace.rank(
                validated_dimension,
                top_n=top,
                custom_values=values or (),
                granularity=validated_granularity,
                filters=filters,
            ),
        )

    output_result(
        ctx,
        [{"rank": i + 1, "value": v} for i, v in enumerate(ranked)],
        columns=["rank", "value"],
        format=format,
    )


@trend_app.command("grid")
@handle_errors
def trend_grid(
    ctx: typer.Context,
    line: Annotated[
        str,
        typer.Option("--line", "-l", help="Inner segment: one line per value."),
    ],
    column: Annotated[
        str,
        typer.Option("--column", "-c", help="Middle segment: one column per value."),
    ] = "none",
    row: Annotated[
        str,
        typer.Option("--row", "-r", help="Outer segment: one row per value."),
    ] = "none",
    line_top: Annotated[int, typer.Option("--line-top", help="Lines per cell.")] = 5,
    column_top: Annotated[int, typer.Option("--column-top", help="Columns.")] = 5,
    row_top: Annotated[int, typer.Option("--row-top", help="Rows.")] = 5,
    line_values: Annotated[
        list[str] | None,
        typer.Option("--line-value", help="Explicit line values. Repeatable."),
    ] = None,
    column_values: Annotated[
        list[str] | None,
        typer.Option("--column-value", help="Explicit column values. Repeatable."),
    ] = None,
    row_values: Annotated[
        list[str] | None,
        typer.Option("--row-value", help="Explicit row values. Repeatable."),
    ] = None,
    metric: Annotated[
        str,
        typer.Option("--metric", "-m", help="Metric key, e.g. searches, conversion."),
    ] = "searches",
    cumulative: Annotated[
        bool,
        typer.Option("--cumulative", help="Plot running totals."),
    ] = False,
    granularity: Annotated[
        str | None,
        typer.Option(
            "--granularity", "-g", help="hour or day (hour for a one-day window)."
        ),
    ] = None,
    date_from: FromOption = None,
    date_to: ToOption = None,
    city: CityOption = None,
    merchant: MerchantOption = None,
    vehicle_category: VehicleCategoryOption = None,
    format: FormatOption = "json",
) -> None:
    """Build a grid of small-multiple series.

    Rows and columns are the top values of the outer and middle segments.
    Each cell plots the top values of the inner segment, ranked once
    across the whole grid so every cell shows the same lines. A cell
    whose fetch failed carries its error; the rest still render.

    Examples:

        segtrend trend grid --line city --metric conversion --cumulative
        segtrend trend grid -l city -c vehicle_category -r run_day --format table
    """
    filters = _build_filters(date_from, date_to, city, merchant, vehicle_category)
    line_spec = SegmentSpec(
        validate_dimension(line, "--line"),
        top_n=line_top,
        custom_values=tuple(line_values or ()),
    )
    column_spec = SegmentSpec(
        validate_segment_dimension(column, "--column"),
        top_n=column_top,
        custom_values=tuple(column_values or ()),
    )
    row_spec = SegmentSpec(
        validate_segment_dimension(row, "--row"),
        top_n=row_top,
        custom_values=tuple(row_values or ()),
    )
    validated_metric = validate_metric(metric)
    validated_granularity = _resolve_granularity(granularity, filters)
    workspace = get_workspace(ctx)

    with status_spinner(ctx, "Building segment grid..."):
        grid = run_async(
            workspace,
            workspace.segment_grid(
                line_spec,
                column=column_spec,
                row=row_spec,
                filters=filters,
                granularity=validated_granularity,
                metric=validated_metric,
                is_cumulative=cumulative,
            ),
        )

    if grid.is_empty:
        console.print(NO_DATA_MESSAGE, highlight=False)
        return

    if format in ("table", "csv"):
        output_result(ctx, _grid_records(grid), format=format)
    else:
        output_result(ctx, grid.to_dict(), format=format)


@trend_app.command("compare")
@handle_errors
def trend_compare(
    ctx: typer.Context,
    date_from: Annotated[
        str,
        typer.Option("--from", help="Window start (YYYY-MM-DD[ HH:MM:SS])."),
    ],
    date_to: Annotated[
        str,
        typer.Option("--to", help="Window end (YYYY-MM-DD[ HH:MM:SS])."),
    ],
    city: CityOption = None,
    merchant: MerchantOption = None,
    vehicle_category: VehicleCategoryOption = None,
    format: FormatOption = "json",
) -> None:
    """Compare a window with the equal-length window just before it.

    The previous window is shifted back by the exact duration of the
    current one, not by a calendar unit.

    Examples:

        segtrend trend compare --from 2025-01-10 --to 2025-01-10
        segtrend trend compare --from "2025-01-10 06:00:00" --to "2025-01-10 12:00:00"
    """
    filters = _build_filters(None, None, city, merchant, vehicle_category)
    start = _boundary(date_from, end=False)
    end = _boundary(date_to, end=True)
    workspace = get_workspace(ctx)

    with status_spinner(ctx, "Comparing periods..."):
        result = run_async(
            workspace,
            workspace.compare(start or date_from, end or date_to, filters=filters),
        )

    if format in ("table", "csv"):
        output_result(ctx, result.df.to_dict("records"), format=format)
    else:
        output_result(ctx, result.to_dict(), format=format)


@trend_app.command("live")
@handle_errors
def trend_live(
    ctx: typer.Context,
    metric: Annotated[
        str,
        typer.Option("--metric", "-m", help="Metric for the hourly comparison."),
    ] = "searches",
    cumulative: Annotated[
        bool,
        typer.Option("--cumulative", help="Plot running totals."),
    ] = False,
    kpis: Annotated[
        bool,
        typer.Option("--kpis", help="Show headline KPIs instead."),
    ] = False,
    kpi_metrics: Annotated[
        list[str] | None,
        typer.Option("--kpi", help="KPI metric keys. Repeatable."),
    ] = None,
    city: CityOption = None,
    merchant: MerchantOption = None,
    vehicle_category: VehicleCategoryOption = None,
    format: FormatOption = "json",
) -> None:
    """Today vs. yesterday vs. the same day last week.

    By default prints the hourly comparison. With --kpis, prints today's
    totals with their change against yesterday and last week up to the
    same hour.

    Examples:

        segtrend trend live --metric conversion --cumulative
        segtrend trend live --kpis --format table
    """
    filters = _build_filters(None, None, city, merchant, vehicle_category)
    workspace = get_workspace(ctx)

    if kpis:
        keys = [validate_metric(k, "--kpi") for k in kpi_metrics or DEFAULT_KPI_METRICS]
        with status_spinner(ctx, "Fetching live KPIs..."):
            results = run_async(workspace, workspace.kpis(keys, filters=filters))
        data = [k.to_dict() for k in results]
        if format in ("table", "csv"):
            for item in data:
                item.pop("trend_series")
        output_result(ctx, data, format=format)
        return

    validated_metric = validate_metric(metric)
    with status_spinner(ctx, "Fetching live comparison..."):
        comparison = run_async(
            workspace,
            workspace.live(validated_metric, is_cumulative=cumulative, filters=filters),
        )

    if format in ("table", "csv"):
        output_result(
            ctx,
            [r.to_dict() for r in comparison.rows],
            columns=["hour", "today", "yesterday", "last_week"],
            format=format,
        )
    else:
        output_result(ctx, comparison.to_dict(), format=format)


@trend_app.command("filters")
@handle_errors
def trend_filters(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """List the values available for each filter.

    Examples:

        segtrend trend filters
    """
    workspace = get_workspace(ctx)
    with status_spinner(ctx, "Fetching filter options..."):
        options = run_async(workspace, workspace.filter_options())
    output_result(ctx, options.to_dict(), format=format)


@trend_app.command("grouped")
@handle_errors
def trend_grouped(
    ctx: typer.Context,
    by: Annotated[
        str,
        typer.Option("--by", "-b", help="Column: city, merchant_id, flow_type, ..."),
    ],
    date_from: FromOption = None,
    date_to: ToOption = None,
    city: CityOption = None,
    merchant: MerchantOption = None,
    vehicle_category: VehicleCategoryOption = None,
    format: FormatOption = "json",
) -> None:
    """Totals grouped by one column.

    Examples:

        segtrend trend grouped --by city --from 2025-01-01 --to 2025-01-07
    """
    validated_by = validate_group_by(by)
    filters = _build_filters(date_from, date_to, city, merchant, vehicle_category)
    workspace = get_workspace(ctx)

    with status_spinner(ctx, f"Grouping by {validated_by}..."):
        result = run_async(workspace, workspace.grouped(validated_by, filters=filters))

    if format in ("table", "csv", "jsonl", "plain"):
        output_result(ctx, result.rows, format=format)
    else:
        output_result(ctx, result.to_dict(), format=format)


@trend_app.command("axis")
@handle_errors
def trend_axis(
    ctx: typer.Context,
    values: Annotated[
        list[float] | None,
        typer.Argument(help="Values to plot."),
    ] = None,
    ticks: Annotated[
        int,
        typer.Option("--ticks", "-t", help="Target number of tick intervals."),
    ] = DEFAULT_TICK_COUNT,
    rate: Annotated[
        bool,
        typer.Option("--rate", help="Label ticks as percentages."),
    ] = False,
    format: FormatOption = "json",
) -> None:
    """Compute a y-axis domain and ticks with 15% headroom.

    Examples:

        segtrend trend axis 10 50 87
        segtrend trend axis 12.5 40 --rate --format plain
    """
    if ticks < 1:
        err_console.print("[red]Error:[/red] --ticks must be at least 1")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    domain = nice_domain(values or [], ticks)
    step = nice_step(domain[1] - domain[0], ticks)
    positions = axis_ticks(domain, step)
    label = format_rate_tick if rate else format_axis_value
    output_result(
        ctx,
        {
            "domain": list(domain),
            "step": step,
            "ticks": positions,
            "labels": [label(t) for t in positions],
        },
        format=format,
    )
