"""
Period reports over tasks, as a spreadsheet or a paginated PDF.

Windows are computed on the local calendar of `now` and are inclusive at
both ends: a day runs from 00:00:00 to 23:59:59.999999. Weeks start on
Sunday unless configured to start on Monday. Tasks without `createdAt`
never qualify.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Literal, Sequence

import structlog

from mototask.errors import ValidationError
from mototask.notifications import Outcome, OutcomeStatus
from mototask.schemas import ReportFormat, ReportPeriod, Task, TaskStatus

from .pdf import render_table_pdf
from .spreadsheets import Sheet, format_timestamp, render_workbook, task_row

log = structlog.get_logger()

WeekStart = Literal["sunday", "monday"]

_FIRST_WEEKDAY = {"monday": 0, "sunday": 6}


@dataclass(frozen=True)
class EmptyResult:
    """No task was created in the window, so no file was produced."""

    period: ReportPeriod
    start: datetime
    end: datetime

    def outcome(self) -> Outcome:
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="No tasks found",
            description=(
                f"No tasks were created in the selected period: "
                f"{self.start:%Y-%m-%d} - {self.end:%Y-%m-%d}"
            ),
            counts={"tasks": 0},
        )


@dataclass
class Report:
    period: ReportPeriod
    format: ReportFormat
    filename: str
    content: bytes
    start: datetime
    end: datetime
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def outcome(self) -> Outcome:
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Report downloaded",
            description=f"Your {self.period.value} report has been successfully generated.",
            counts={"tasks": self.total, **self.counts},
        )


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------


def period_bounds(
    period: ReportPeriod | str,
    now: datetime,
    week_starts_on: WeekStart = "sunday",
) -> tuple[datetime, datetime]:
    period = ReportPeriod(period)
    today = now.date()

    if period == ReportPeriod.DAILY:
        first, last = today, today
    elif period == ReportPeriod.WEEKLY:
        if week_starts_on not in _FIRST_WEEKDAY:
            raise ValidationError(f"Unknown week start: {week_starts_on!r}")
        offset = (today.weekday() - _FIRST_WEEKDAY[week_starts_on]) % 7
        first = today - timedelta(days=offset)
        last = first + timedelta(days=6)
    elif period == ReportPeriod.MONTHLY:
        first = today.replace(day=1)
        last = today.replace(day=calendar.monthrange(today.year, today.month)[1])
    else:
        first, last = date(today.year, 1, 1), date(today.year, 12, 31)

    return (
        datetime.combine(first, time.min, tzinfo=now.tzinfo),
        datetime.combine(last, time.max, tzinfo=now.tzinfo),
    )


def _align(ts: datetime, reference: datetime) -> datetime:
    """Make `ts` comparable with `reference` (both naive or both aware)."""
    if reference.tzinfo is None:
        return ts.astimezone().replace(tzinfo=None) if ts.tzinfo else ts
    if ts.tzinfo is None:
        return ts.replace(tzinfo=reference.tzinfo)
    return ts


def tasks_in_period(tasks: Sequence[Task], start: datetime, end: datetime) -> list[Task]:
    return [
        t for t in tasks
        if t.created_at is not None and start <= _align(t.created_at, start) <= end
    ]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _status_counts(tasks: Sequence[Task]) -> dict[str, int]:
    return {s.value: sum(1 for t in tasks if t.status == s) for s in TaskStatus}


def _spreadsheet(title: str, date_range: str, tasks: Sequence[Task]) -> bytes:
    counts = _status_counts(tasks)
    summary = [
        {"label": "Report Title", "value": title},
        {"label": "Date Range", "value": date_range},
        {"label": "Total Tasks", "value": len(tasks)},
        *({"label": status, "value": n} for status, n in counts.items()),
    ]
    sheets = [
        Sheet("Summary", summary, header=False),
        Sheet("All Tasks", [task_row(t) for t in tasks]),
    ]
    for status, sheet_title in ((TaskStatus.OPEN, "Open Tasks"), (TaskStatus.COMPLETED, "Completed Tasks")):
        bucket = [t for t in tasks if t.status == status]
        if bucket:
            sheets.append(Sheet(sheet_title, [task_row(t) for t in bucket]))
    return render_workbook(sheets)


def _pdf(title: str, date_range: str, tasks: Sequence[Task]) -> bytes:
    return render_table_pdf(
        title,
        f"Date Range: {date_range}",
        ["Vehicle No", "Name", "Reg No", "Status", "Created At"],
        [
            [t.vehicle_number, t.name, t.reg_number, t.status.value, format_timestamp(t.created_at)]
            for t in tasks
        ],
    )


def build_report(
    tasks: Sequence[Task],
    period: ReportPeriod | str,
    fmt: ReportFormat | str,
    *,
    now: datetime | None = None,
    week_starts_on: WeekStart = "sunday",
) -> Report | EmptyResult:
    """Render the tasks created in the current `period`, or EmptyResult if there are none."""
    try:
        period = ReportPeriod(period)
        fmt = ReportFormat(fmt)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    now = now or datetime.now().astimezone()
    start, end = period_bounds(period, now, week_starts_on)
    selected = tasks_in_period(tasks, start, end)
    if not selected:
        log.info("report.empty", period=period.value, start=start.isoformat(), end=end.isoformat())
        return EmptyResult(period, start, end)

    title = f"{period.value.capitalize()} Task Report"
    date_range = f"{start:%Y-%m-%d} to {end:%Y-%m-%d}"
    if fmt == ReportFormat.SPREADSHEET:
        content, ext = _spreadsheet(title, date_range, selected), "xlsx"
    else:
        content, ext = _pdf(title, date_range, selected), "pdf"

    report = Report(
        period=period,
        format=fmt,
        filename=f"{period.value}_report_{now:%Y-%m-%d}.{ext}",
        content=content,
        start=start,
        end=end,
        counts=_status_counts(selected),
    )
    log.info("report.built", period=period.value, format=fmt.value, tasks=len(selected))
    return report
