from __future__ import annotations

import csv
from datetime import datetime, timezone
import io
from typing import Any

from signal_console.core.errors import NotFoundError


def render_csv(table: dict[str, Any]) -> str:
    """Render a ``{columns, rows}`` table as CSV with every cell quoted and CRLF line endings."""
    columns: list[str] = list(table.get("columns") or [])
    rows: list[dict[str, Any]] = list(table.get("rows") or [])
    if not rows:
        raise NotFoundError("no rows to export")

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_format_cell(row.get(column)) for column in columns])
    return buffer.getvalue().removesuffix("\r\n")


def export_filename(kind: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    return f"{kind}-evaluations_{stamp}.csv"


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
