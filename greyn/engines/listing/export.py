"""
CSV / JSON export rendering for admin list consoles.
"""

import csv
import io
import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

EXPORT_FORMATS = ("csv", "json")

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def to_csv(rows: Iterable[Dict[str, Any]], columns: Sequence[Tuple[str, str]]) -> str:
    """
    Render rows as CSV.

    columns is a list of (key, header). Values containing a comma, quote or
    newline are quoted with inner quotes doubled; missing values are empty.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow([header for _, header in columns])
    for row in rows:
        writer.writerow([_cell(row.get(key)) for key, _ in columns])
    return buf.getvalue()


def to_json(rows: Iterable[Dict[str, Any]]) -> str:
    return json.dumps([{k: _cell(v) if v is not None else None for k, v in row.items()} for row in rows], indent=2)


def export_filename(resource: str, fmt: str, today: Optional[date] = None) -> str:
    """e.g. rate-limits-2026-03-01.csv"""
    today = today or date.today()
    return f"{resource}-{today.isoformat()}.{fmt}"


def render_export(
    rows: List[Dict[str, Any]],
    columns: Sequence[Tuple[str, str]],
    fmt: str,
) -> Tuple[str, str]:
    """
    Render rows in the requested format.

    Returns (body, media_type). Raises ValueError for unknown formats.
    """
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    if fmt == "csv":
        return to_csv(rows, columns), MEDIA_TYPES["csv"]
    return to_json(rows), MEDIA_TYPES["json"]
