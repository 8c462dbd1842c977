"""Segment grid assembly.

Arranges per-combination fetch results into rows (outer segment values)
and columns (middle segment values) of small-multiple charts. The inner
segment's lines are ranked once across the whole grid, so every cell
shows the same lines in the same colors on the same timestamps.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from itertools import chain

from segment_trends._internal.services.accumulator import pivot_lines
from segment_trends._internal.services.derived_metrics import MetricDefinition
from segment_trends._internal.services.ranking import order_values, rank_top_n
from segment_trends.types import (
    CellResult,
    DimensionalPoint,
    Grid,
    GridCell,
    QueryCombination,
    SegmentSpec,
    SeriesPoint,
)

_logger = logging.getLogger(__name__)

LINE_COLORS: tuple[str, ...] = (
    "#3b82f6",
    "#22c55e",
    "#eab308",
    "#ec4899",
    "#8b5cf6",
    "#f97316",
    "#06b6d4",
    "#14b8a6",
    "#f43f5e",
    "#6366f1",
)

NO_DATA_MESSAGE = "No data available based on your selection."


def line_color(index: int) -> str:
    """Palette color for the index-th line, cycling."""
    return LINE_COLORS[index % len(LINE_COLORS)]


def global_line_values(
    results: Iterable[CellResult],
    top_n: int,
    custom_values: Sequence[str] = (),
) -> list[str]:
    """Rank inner-segment values across every successful cell at once."""
    if custom_values:
        return list(custom_values)
    points = chain.from_iterable(r.points for r in results if r.error is None)
    return rank_top_n(points, top_n)


def shared_timestamps(results: Iterable[CellResult]) -> list[str]:
    """Sorted union of bucket timestamps over every successful cell."""
    return sorted(
        {p.timestamp for r in results if r.error is None for p in r.points}
    )


class GridAssembler:
    """Builds a Grid from fetched combination results.

    Example:
        ```python
        assembler = GridAssembler(
            SegmentSpec("city", top_n=3),
            get_metric("conversion"),
            is_cumulative=True,
        )
        grid = assembler.assemble(combinations, results)
        ```
    """

    def __init__(
        self,
        line: SegmentSpec,
        metric: MetricDefinition,
        *,
        is_cumulative: bool = False,
        row_dimension: str = "none",
    ) -> None:
        """Initialize the assembler.

        Args:
            line: Inner segment; its top_n or custom values bound the lines.
            metric: Metric each line plots.
            is_cumulative: Plot running totals instead of per-bucket values.
            row_dimension: Outer segment dimension, used to order rows.
        """
        self._line = line
        self._metric = metric
        self._is_cumulative = is_cumulative
        self._row_dimension = row_dimension

    def assemble(
        self,
        combinations: Sequence[QueryCombination],
        results: Iterable[CellResult],
        *,
        pending: Collection[QueryCombination] = (),
    ) -> Grid:
        """Lay results out as a grid.

        Args:
            combinations: Every planned cell, in query-plan order.
            results: Completed fetches, matched to cells by combination.
            pending: Cells still being fetched; rendered as loading.

        Returns:
            Grid; empty (the 'no data' state) when there is nothing to plot.
        """
        if not combinations:
            return Grid(metric=self._metric.key, is_cumulative=self._is_cumulative)

        by_combination = {r.combination: r for r in results}
        completed = [r for c, r in by_combination.items() if c not in pending]

        columns = list(dict.fromkeys(c.column_value for c in combinations))
        planned_rows = [
            r for r in dict.fromkeys(c.row_value for c in combinations) if r is not None
        ]
        rows: list[str | None] = (
            list(order_values(self._row_dimension, planned_rows))
            if planned_rows
            else [None]
        )

        lines = global_line_values(
            completed, self._line.top_n, self._line.custom_values
        )
        line_set = set(lines)
        timestamps = shared_timestamps(completed)
        colors = {name: line_color(i) for i, name in enumerate(lines)}

        cells: list[list[GridCell]] = []
        for row in rows:
            grid_row: list[GridCell] = []
            for column in columns:
                combination = QueryCombination(column_value=column, row_value=row)
                result = by_combination.get(combination)
                if combination in pending or result is None:
                    grid_row.append(
                        GridCell(column_value=column, row_value=row, loading=True)
                    )
                elif result.error is not None:
                    grid_row.append(
                        GridCell(column_value=column, row_value=row, error=result.error)
                    )
                else:
                    grid_row.append(
                        GridCell(
                            column_value=column,
                            row_value=row,
                            series=self._cell_series(
                                result.points, line_set, lines, timestamps
                            ),
                            colors=colors,
                        )
                    )
            cells.append(grid_row)

        _logger.debug(
            "Assembled %dx%d grid with %d lines over %d buckets",
            len(rows),
            len(columns),
            len(lines),
            len(timestamps),
        )
        return Grid(
            metric=self._metric.key,
            is_cumulative=self._is_cumulative,
            row_values=rows,
            column_values=columns,
            line_values=lines,
            timestamps=timestamps,
            cells=cells,
        )

    def _cell_series(
        self,
        points: Iterable[DimensionalPoint],
        line_set: set[str],
        lines: list[str],
        timestamps: list[str],
    ) -> dict[str, list[SeriesPoint]]:
        kept = [p for p in points if p.dimension_value in line_set]
        return pivot_lines(
            kept,
            self._metric,
            is_cumulative=self._is_cumulative,
            timestamps=timestamps,
            line_values=lines,
        )
