"""
Archive export: task metadata spreadsheet plus photo evidence in one zip.

Layout for a single task:

    task_data.xlsx          Task Details (+ Submissions when there are any)
    photos/<name>.jpg

Layout for several tasks, or for a whole task list of any size:

    tasks_data.xlsx         one details sheet per task
    task_<id>/photos/<name>.jpg

A photo that cannot be fetched is replaced by a FAILED_TO_DOWNLOAD_*.txt
entry naming its URL. Only listing submissions and writing the spreadsheet
can fail the whole export.
"""

from __future__ import annotations

import asyncio
import io
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Sequence

import structlog

from mototask.errors import PartialExportFailure, SerializationError, ValidationError
from mototask.notifications import Outcome, OutcomeStatus, failures_from
from mototask.schemas import Submission, Task
from mototask.store.blobs import BlobStore, blob_path_from_url
from mototask.store.documents import DocumentStore

from .fanout import gather_settled
from .queries import list_submissions
from .spreadsheets import Sheet, format_timestamp, render_workbook, task_row

log = structlog.get_logger()

TASK_SPREADSHEET = "task_data.xlsx"
ALL_TASKS_SPREADSHEET = "tasks_data.xlsx"
DEFAULT_MAX_CONCURRENCY = 8


@dataclass
class ArchiveResult:
    filename: str
    content: bytes
    tasks: int
    submissions: int
    photos: int
    partial_failure: PartialExportFailure | None = None

    def outcome(self) -> Outcome:
        counts = {"tasks": self.tasks, "submissions": self.submissions, "photos": self.photos}
        if self.partial_failure:
            failed = self.partial_failure.failed_urls
            counts["photos_failed"] = len(failed)
            return Outcome(
                status=OutcomeStatus.WARNING,
                title="Download ready with missing photos",
                description=f"{len(failed)} photo(s) could not be downloaded and were replaced by notes.",
                counts=counts,
                failures=failures_from(failed),
            )
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Download ready",
            description=f"Archive {self.filename} contains {self.tasks} task(s) and {self.photos} photo(s).",
            counts=counts,
        )


@dataclass(frozen=True)
class _PhotoRef:
    folder: str
    submission_id: str
    index: int
    url: str
    name: str

    @property
    def entry(self) -> str:
        return f"{self.folder}/{self.name}"

    @property
    def placeholder(self) -> str:
        return f"{self.folder}/FAILED_TO_DOWNLOAD_submission_{self.submission_id}_photo_{self.index + 1}.txt"


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def photo_filename(submission_id: str, index: int, url: str) -> str:
    """Name from the blob path when it can be recovered, else a generated one."""
    path = blob_path_from_url(url)
    base = PurePosixPath(path).name if path else ""
    if base:
        return f"{submission_id}_{base}"
    return f"submission_{submission_id}_photo_{index + 1}.jpg"


def _dedupe(name: str, taken: set[str]) -> str:
    candidate, n = name, 2
    stem, suffix = PurePosixPath(name).stem, PurePosixPath(name).suffix
    while candidate in taken:
        candidate = f"{stem}_{n}{suffix}"
        n += 1
    taken.add(candidate)
    return candidate


def _photo_refs(folder: str, submissions: Sequence[Submission]) -> list[_PhotoRef]:
    taken: set[str] = set()
    refs = []
    for sub in submissions:
        for index, url in enumerate(sub.photo_urls):
            name = _dedupe(photo_filename(sub.id, index, url), taken)
            refs.append(_PhotoRef(folder, sub.id, index, url, name))
    return refs


# ---------------------------------------------------------------------------
# Sheets
# ---------------------------------------------------------------------------


def _details_row(task: Task) -> dict[str, Any]:
    return {
        **task_row(task),
        "Public Link": task.public_link or "",
        "Updated At": format_timestamp(task.updated_at),
    }


def _submission_row(sub: Submission) -> dict[str, Any]:
    return {
        "Submission ID": sub.id,
        "Verifier Name": sub.verifier_name,
        "Notes": sub.notes,
        "Submitted At": format_timestamp(sub.created_at),
        "Photo URLs": ", ".join(sub.photo_urls),
    }


def _sheets(
    tasks: Sequence[Task], submissions: Sequence[list[Submission]], single: bool
) -> list[Sheet]:
    if single:
        sheets = [Sheet("Task Details", [_details_row(tasks[0])])]
        if submissions[0]:
            sheets.append(Sheet("Submissions", [_submission_row(s) for s in submissions[0]]))
        return sheets
    return [Sheet(f"task_{t.id}", [_details_row(t)]) for t in tasks]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def build_archive(
    docs: DocumentStore,
    blobs: BlobStore,
    user_id: str,
    tasks: Task | Sequence[Task],
    *,
    filename: str | None = None,
    all_tasks: bool = False,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    task_spreadsheet: str = TASK_SPREADSHEET,
    all_tasks_spreadsheet: str = ALL_TASKS_SPREADSHEET,
) -> ArchiveResult:
    """
    Build a zip archive for one task or several.

    `all_tasks` selects the several-task layout even when only one task is
    given, as for a user's whole task list.
    """
    tasks = [tasks] if isinstance(tasks, Task) else list(tasks)
    if not tasks:
        raise ValidationError("There are no tasks to export")
    single = len(tasks) == 1 and not all_tasks

    submissions = await asyncio.gather(*(list_submissions(docs, user_id, t.id) for t in tasks))

    refs: list[_PhotoRef] = []
    for task, subs in zip(tasks, submissions):
        refs.extend(_photo_refs("photos" if single else f"task_{task.id}/photos", subs))

    fetched = await gather_settled(refs, lambda ref: blobs.get(ref.url), max_concurrency)

    workbook = render_workbook(_sheets(tasks, submissions, single))
    failed: dict[str, str] = {}
    buf = io.BytesIO()
    try:
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(task_spreadsheet if single else all_tasks_spreadsheet, workbook)
            for result in fetched:
                ref = result.key
                if result.ok:
                    zf.writestr(ref.entry, result.value, compress_type=zipfile.ZIP_STORED)
                else:
                    failed[ref.url] = str(result.error)
                    log.warning("archive.photo_fetch_failed", url=ref.url, error=str(result.error))
                    zf.writestr(ref.placeholder, f"Failed to download: {ref.url}")
    except (zipfile.BadZipFile, ValueError) as exc:
        raise SerializationError(f"Could not write archive: {exc}") from exc

    result = ArchiveResult(
        filename=filename or (f"mototask_{tasks[0].id}.zip" if single else "all_tasks_archive.zip"),
        content=buf.getvalue(),
        tasks=len(tasks),
        submissions=sum(len(s) for s in submissions),
        photos=len(refs) - len(failed),
        partial_failure=PartialExportFailure(failed) if failed else None,
    )
    log.info(
        "archive.built",
        user_id=user_id,
        tasks=result.tasks,
        submissions=result.submissions,
        photos=result.photos,
        photos_failed=len(failed),
        size=len(result.content),
    )
    return result
