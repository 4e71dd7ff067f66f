"""
Dashboard-facing entry points.

Each action runs one service call for the signed-in user and concludes with
exactly one Outcome, whatever the service raises. Files produced by exports
and reports are returned alongside the outcome for the caller to deliver.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

import structlog

from .config import Settings
from .errors import MotoTaskError
from .notifications import Outcome, OutcomeStatus, outcome_for_error
from .schemas import ReportFormat, ReportPeriod, Task
from .services import (
    build_archive,
    build_report,
    delete_task,
    delete_task_documents,
    list_tasks,
    regenerate_public_link,
)
from .store.blobs import BlobStore
from .store.documents import DocumentStore

log = structlog.get_logger()


@dataclass
class ActionResult:
    outcome: Outcome
    payload: Any = None


class TaskActions:
    """Lifecycle, export and report actions bound to one user's tasks."""

    def __init__(self, settings: Settings, docs: DocumentStore, blobs: BlobStore, user_id: str):
        self._settings = settings
        self._docs = docs
        self._blobs = blobs
        self._user_id = user_id

    def _failed(self, action: str, exc: Exception) -> ActionResult:
        if isinstance(exc, MotoTaskError):
            log.error("action.failed", action=action, user_id=self._user_id, error=str(exc))
        else:
            log.exception("action.unexpected_error", action=action, user_id=self._user_id)
        return ActionResult(outcome_for_error(action, exc))

    async def delete(self, task: Task) -> ActionResult:
        try:
            result = await delete_task(
                self._docs,
                self._blobs,
                self._user_id,
                task,
                max_concurrency=self._settings.export.max_concurrent_fetches,
            )
        except Exception as exc:
            return self._failed("Delete task", exc)
        return ActionResult(result.outcome(), result)

    async def retry_delete_documents(self, task_id: str) -> ActionResult:
        try:
            removed = await delete_task_documents(self._docs, self._user_id, task_id)
        except Exception as exc:
            return self._failed("Delete task", exc)
        outcome = Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Task successfully deleted",
            description=f"Task {task_id} and {removed} submission(s) have been removed.",
            counts={"submissions_deleted": removed},
        )
        return ActionResult(outcome, removed)

    async def regenerate_link(self, task: Task) -> ActionResult:
        try:
            result = await regenerate_public_link(
                self._docs, self._user_id, task, self._settings.links.public_base_url
            )
        except Exception as exc:
            return self._failed("Regenerate link", exc)
        return ActionResult(result.outcome(), result)

    async def export_task(self, task: Task) -> ActionResult:
        return await self._export([task], all_tasks=False)

    async def export_all(self) -> ActionResult:
        try:
            tasks = await list_tasks(self._docs, self._user_id)
        except Exception as exc:
            return self._failed("Archive", exc)
        return await self._export(tasks, all_tasks=True)

    async def _export(self, tasks: Sequence[Task], *, all_tasks: bool) -> ActionResult:
        cfg = self._settings.export
        try:
            result = await build_archive(
                self._docs,
                self._blobs,
                self._user_id,
                tasks,
                all_tasks=all_tasks,
                max_concurrency=cfg.max_concurrent_fetches,
                task_spreadsheet=cfg.task_spreadsheet_name,
                all_tasks_spreadsheet=cfg.all_tasks_spreadsheet_name,
            )
        except Exception as exc:
            return self._failed("Archive", exc)
        return ActionResult(result.outcome(), result)

    async def report(
        self,
        period: ReportPeriod | str,
        fmt: ReportFormat | str,
        now: datetime | None = None,
    ) -> ActionResult:
        try:
            tasks = await list_tasks(self._docs, self._user_id)
            result = build_report(
                tasks,
                period,
                fmt,
                now=now,
                week_starts_on=self._settings.reports.week_starts_on,
            )
        except Exception as exc:
            return self._failed("Report", exc)
        return ActionResult(result.outcome(), result)
