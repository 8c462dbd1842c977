"""Output formatters for CLI commands.

- JSON: Pretty-printed JSON
- JSONL: One JSON object per line
- Table: Rich table; numeric columns right-aligned
- CSV: Header row plus one row per record
- Plain: One item per line
"""

from __future__ import annotations

import csv
import io
import json
import math
from datetime import date, datetime
from typing import Any

from rich.table import Table

# Keys format_plain prints for a record, in order of preference
PLAIN_KEYS: tuple[str, ...] = ("name", "value", "label", "hour", "key", "id")


def _json_serializer(obj: Any) -> str:
    """JSON fallback for dates and anything else non-standard."""
    if isinstance(obj, datetime | date):
        return obj.isoformat()
    return str(obj)


def _finite(value: Any) -> Any:
    """Replace NaN/Infinity (not valid JSON) with None, recursively."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _finite(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_finite(v) for v in value]
    return value


def _as_records(data: dict[str, Any] | list[Any]) -> list[Any]:
    return [data] if isinstance(data, dict) else list(data)


def _columns_of(records: list[Any], columns: list[str] | None) -> list[str]:
    """Explicit columns, else the union of record keys in first-seen order."""
    if columns is not None:
        return columns
    if not records or not isinstance(records[0], dict):
        return ["value"]
    seen: dict[str, None] = {}
    for record in records:
        if isinstance(record, dict):
            seen.update(dict.fromkeys(record))
    return list(seen)


def format_json(data: dict[str, Any] | list[Any]) -> str:
    """Pretty-printed JSON with 2-space indentation."""
    return json.dumps(
        _finite(data), indent=2, default=_json_serializer, ensure_ascii=False
    )


def format_jsonl(data: dict[str, Any] | list[Any]) -> str:
    """One JSON object per line for lists; a single line for a dict."""
    return "\n".join(
        json.dumps(_finite(item), default=_json_serializer, ensure_ascii=False)
        for item in _as_records(data)
    )


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        return f"{int(value):,}" if value.is_integer() else f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, list | dict):
        return json.dumps(value, default=_json_serializer, ensure_ascii=False)
    return str(value)


def _is_numeric_column(records: list[Any], column: str) -> bool:
    values = [
        r.get(column)
        for r in records
        if isinstance(r, dict) and r.get(column) is not None
    ]
    return bool(values) and all(
        isinstance(v, int | float) and not isinstance(v, bool) for v in values
    )


def format_table(
    data: dict[str, Any] | list[Any],
    columns: list[str] | None = None,
) -> Table:
    """Format records as a Rich table.

    Args:
        data: A dict or a list of dicts (or scalars).
        columns: Columns to display. Defaults to every key seen.

    Returns:
        Rich Table ready for printing. Numbers are grouped by thousands
        and floats shown to 2 decimals.
    """
    table = Table(show_header=True, header_style="bold")
    records = _as_records(data)
    if not records:
        return table

    cols = _columns_of(records, columns)
    for col in cols:
        table.add_column(
            col.upper().replace("_", " "),
            justify="right" if _is_numeric_column(records, col) else "left",
        )

    for record in records:
        if isinstance(record, dict):
            table.add_row(*(_format_cell(record.get(col)) for col in cols))
        else:
            table.add_row(_format_cell(record))
    return table


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, list | dict):
        return json.dumps(value, default=_json_serializer, ensure_ascii=False)
    return str(value)


def format_csv(
    data: dict[str, Any] | list[Any],
    columns: list[str] | None = None,
) -> str:
    """Format records as CSV with a header row.

    Columns default to every key seen across the records, so rows with
    differing keys (one column per grid line, say) stay aligned.
    """
    records = _as_records(data)
    if not records:
        return ""

    output = io.StringIO()
    if isinstance(records[0], dict):
        writer = csv.DictWriter(
            output, fieldnames=_columns_of(records, columns), extrasaction="ignore"
        )
        writer.writeheader()
        for record in records:
            if isinstance(record, dict):
                writer.writerow({k: _csv_value(v) for k, v in record.items()})
    else:
        list_writer = csv.writer(output)
        list_writer.writerow(["value"])
        for record in records:
            list_writer.writerow([_csv_value(record)])
    return output.getvalue()


def format_plain(data: dict[str, Any] | list[Any]) -> str:
    """Format as minimal text, one item per line.

    A record prints its first PLAIN_KEYS value, else its first value. A
    single dict without any of those keys prints as key=value lines.
    """
    if isinstance(data, dict):
        for key in PLAIN_KEYS:
            if key in data:
                return str(data[key])
        return "\n".join(f"{k}={v}" for k, v in data.items())

    lines: list[str] = []
    for item in data:
        if isinstance(item, dict):
            key = next((k for k in PLAIN_KEYS if k in item), None)
            if key is not None:
                lines.append(str(item[key]))
            else:
                lines.append(str(next(iter(item.values()))) if item else "")
        else:
            lines.append(str(item))
    return "\n".join(lines)
