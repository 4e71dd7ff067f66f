"""Workbook rendering: named sheets of row dicts to .xlsx bytes."""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError

from mototask.errors import SerializationError
from mototask.schemas import Task

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_SHEET_TITLE = 31
_BAD_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")


@dataclass
class Sheet:
    title: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    header: bool = True


def format_timestamp(ts: datetime | None) -> str:
    return ts.strftime(TIMESTAMP_FORMAT) if ts else ""


def task_row(task: Task) -> dict[str, Any]:
    return {
        "Task ID": task.id,
        "Vehicle Number": task.vehicle_number,
        "Name": task.name,
        "Registration Number": task.reg_number,
        "Description": task.task_description or "",
        "Status": task.status.value,
        "Created At": format_timestamp(task.created_at),
    }


def _sheet_title(title: str, taken: set[str]) -> str:
    base = _BAD_TITLE_CHARS.sub("_", title).strip() or "Sheet"
    base = base[:MAX_SHEET_TITLE]
    candidate, n = base, 2
    while candidate.lower() in taken:
        suffix = f" ({n})"
        candidate = base[: MAX_SHEET_TITLE - len(suffix)] + suffix
        n += 1
    taken.add(candidate.lower())
    return candidate


def _cell(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return value


def render_workbook(sheets: Sequence[Sheet]) -> bytes:
    """Render sheets in order. Header row is the union of row keys, first-seen order."""
    if not sheets:
        raise SerializationError("A workbook needs at least one sheet")

    wb = Workbook()
    wb.remove(wb.active)
    taken: set[str] = set()
    try:
        for sheet in sheets:
            ws = wb.create_sheet(_sheet_title(sheet.title, taken))
            columns = list(dict.fromkeys(k for row in sheet.rows for k in row))
            if sheet.header and columns:
                ws.append(columns)
            for row in sheet.rows:
                ws.append([_cell(row.get(c)) for c in columns])
        buf = io.BytesIO()
        wb.save(buf)
    except (IllegalCharacterError, ValueError, TypeError) as exc:
        raise SerializationError(f"Could not write spreadsheet: {exc}") from exc
    return buf.getvalue()
