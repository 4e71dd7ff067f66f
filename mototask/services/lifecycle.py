"""
Task lifecycle service: create, update, cascading delete and id migration.

Handles:
- Cascading delete of a task, its submissions and their photo blobs
- Atomic migration of a task and its submissions to a new id
- Public link regeneration (which migrates the task to a fresh id)

Blob work always finishes before the document batch commits. Only the
document store is atomic; blob deletes are best-effort and recorded.

Two concurrent delete/migrate calls on the same task are not coordinated:
the store applies whichever batch commits last.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from mototask.errors import (
    NotFoundError,
    PartialCleanupFailure,
    StoreTransactionError,
    ValidationError,
)
from mototask.notifications import Outcome, OutcomeStatus, failures_from
from mototask.schemas import Task, TaskStatus
from mototask.store.blobs import BlobStore
from mototask.store.documents import SERVER_TIMESTAMP, DocumentStore, new_document_id
from mototask.store.paths import submission_path, task_path

from .fanout import gather_settled
from .queries import list_submission_documents

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def new_task_id() -> str:
    return new_document_id()


def build_public_link(base_url: str, user_id: str, task_id: str) -> str:
    return f"{base_url.rstrip('/')}/verify/{user_id}/{task_id}"


def _relink(link: str, user_id: str, task_id: str) -> str:
    """Point an existing public link at `task_id`, keeping its origin."""
    base = link.split("/verify/", 1)[0] if "/verify/" in link else link
    return build_public_link(base, user_id, task_id)


def _check_id(task_id: str, what: str = "task id") -> None:
    if not task_id or "/" in task_id:
        raise ValidationError(f"Invalid {what}: {task_id!r}")


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------


async def create_task(docs: DocumentStore, user_id: str, task: Task) -> Task:
    """Write a new task under its pre-generated id."""
    _check_id(task.id)
    data = task.to_document()
    data["createdAt"] = SERVER_TIMESTAMP
    data["updatedAt"] = SERVER_TIMESTAMP
    await docs.set(task_path(user_id, task.id), data)
    log.info("task.created", user_id=user_id, task_id=task.id)
    return task


async def update_task(docs: DocumentStore, user_id: str, task: Task) -> Task:
    """Save edited fields. `id` and `createdAt` are never rewritten."""
    _check_id(task.id)
    data = task.to_document()
    data.pop("id")
    data["updatedAt"] = SERVER_TIMESTAMP
    await docs.update(task_path(user_id, task.id), data)
    log.info("task.updated", user_id=user_id, task_id=task.id)
    return task


# ---------------------------------------------------------------------------
# Cascading delete
# ---------------------------------------------------------------------------


@dataclass
class DeleteResult:
    task_id: str
    submissions_deleted: int
    blobs_deleted: list[str] = field(default_factory=list)
    blobs_already_absent: list[str] = field(default_factory=list)
    partial_failure: PartialCleanupFailure | None = None

    def outcome(self) -> Outcome:
        counts = {
            "submissions_deleted": self.submissions_deleted,
            "blobs_deleted": len(self.blobs_deleted),
            "blobs_already_absent": len(self.blobs_already_absent),
        }
        if self.partial_failure:
            return Outcome(
                status=OutcomeStatus.WARNING,
                title="Task deleted with warnings",
                description=str(self.partial_failure),
                counts=counts,
                failures=failures_from(self.partial_failure.failed_blobs),
            )
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Task successfully deleted",
            description=f"Task {self.task_id} and {self.submissions_deleted} submission(s) have been removed.",
            counts=counts,
        )


async def delete_task(
    docs: DocumentStore,
    blobs: BlobStore,
    user_id: str,
    task: Task,
    *,
    max_concurrency: int | None = None,
) -> DeleteResult:
    """
    Delete a task, all its submissions and every photo they reference.

    Raises PartialCleanupFailure (documents_deleted=False) when the document
    batch fails after the photo phase; retry with delete_task_documents.
    """
    _check_id(task.id)
    bound = log.bind(user_id=user_id, task_id=task.id)

    submissions = await list_submission_documents(docs, user_id, task.id)
    urls = list(dict.fromkeys(
        url for doc in submissions for url in (doc.data.get("photoUrls") or [])
    ))

    deleted: list[str] = []
    absent: list[str] = []
    failed: dict[str, str] = {}
    for settled in await gather_settled(urls, blobs.delete, max_concurrency):
        if settled.ok:
            deleted.append(settled.key)
        elif isinstance(settled.error, NotFoundError):
            absent.append(settled.key)
        else:
            failed[settled.key] = str(settled.error)
            bound.warning("task.photo_delete_failed", url=settled.key, error=str(settled.error))

    batch = docs.batch()
    for doc in submissions:
        batch.delete(doc.path)
    batch.delete(task_path(user_id, task.id))
    try:
        await batch.commit()
    except StoreTransactionError as exc:
        bound.error("task.delete_commit_failed", blobs_deleted=len(deleted), error=str(exc))
        raise PartialCleanupFailure(
            task.id,
            documents_deleted=False,
            deleted_blobs=deleted + absent,
            failed_blobs=failed,
        ) from exc

    result = DeleteResult(
        task_id=task.id,
        submissions_deleted=len(submissions),
        blobs_deleted=deleted,
        blobs_already_absent=absent,
    )
    if failed:
        result.partial_failure = PartialCleanupFailure(
            task.id, documents_deleted=True, deleted_blobs=deleted, failed_blobs=failed
        )
    bound.info(
        "task.deleted",
        submissions=len(submissions),
        blobs_deleted=len(deleted),
        blobs_absent=len(absent),
        blobs_failed=len(failed),
    )
    return result


async def delete_task_documents(docs: DocumentStore, user_id: str, task_id: str) -> int:
    """Delete a task's documents only. Returns the number of submissions removed."""
    _check_id(task_id)
    submissions = await list_submission_documents(docs, user_id, task_id)
    batch = docs.batch()
    for doc in submissions:
        batch.delete(doc.path)
    batch.delete(task_path(user_id, task_id))
    await batch.commit()
    log.info("task.documents_deleted", user_id=user_id, task_id=task_id, submissions=len(submissions))
    return len(submissions)


# ---------------------------------------------------------------------------
# Identity migration
# ---------------------------------------------------------------------------


@dataclass
class MigrationResult:
    old_id: str
    new_id: str
    submissions_moved: int
    task: Task

    def outcome(self) -> Outcome:
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Task updated with new link",
            description=f"Task {self.old_id} moved to {self.new_id} with {self.submissions_moved} submission(s).",
            counts={"submissions_moved": self.submissions_moved},
        )


async def migrate_task(docs: DocumentStore, user_id: str, task: Task, new_id: str) -> MigrationResult:
    """
    Move a task and its submissions to `new_id` in one atomic batch.

    Field values are written as given on `task`; `createdAt` is carried over
    from the stored document and `updatedAt` refreshed. Photo blobs stay where
    they are and their URLs move unchanged.
    """
    _check_id(task.id)
    _check_id(new_id, "new task id")
    if new_id == task.id:
        raise ValidationError(f"New task id must differ from {task.id!r}")

    old_path = task_path(user_id, task.id)
    stored = await docs.get(old_path)
    if stored is None:
        raise NotFoundError(old_path)
    submissions = await list_submission_documents(docs, user_id, task.id)

    moved = task.model_copy(update={"id": new_id, "created_at": stored.get("createdAt")})
    if moved.public_link:
        moved.public_link = _relink(moved.public_link, user_id, new_id)

    data = moved.to_document()
    if "createdAt" in stored:
        data["createdAt"] = stored["createdAt"]
    data["updatedAt"] = SERVER_TIMESTAMP

    batch = docs.batch()
    batch.set(task_path(user_id, new_id), data)
    for doc in submissions:
        batch.set(submission_path(user_id, new_id, doc.id), doc.data)
        batch.delete(doc.path)
    batch.delete(old_path)
    try:
        await batch.commit()
    except StoreTransactionError as exc:
        log.error("task.migration_failed", user_id=user_id, task_id=task.id, new_id=new_id, error=str(exc))
        raise

    log.info("task.migrated", user_id=user_id, task_id=task.id, new_id=new_id, submissions=len(submissions))
    return MigrationResult(old_id=task.id, new_id=new_id, submissions_moved=len(submissions), task=moved)


async def regenerate_public_link(
    docs: DocumentStore, user_id: str, task: Task, base_url: str
) -> MigrationResult:
    """Issue a fresh public link. A completed task is reopened."""
    new_id = new_task_id()
    status = TaskStatus.OPEN if task.status == TaskStatus.COMPLETED else task.status
    updated = task.model_copy(update={
        "is_public": True,
        "public_link": build_public_link(base_url, user_id, new_id),
        "status": status,
    })
    if status != task.status:
        log.info("task.reopened", user_id=user_id, task_id=task.id)
    return await migrate_task(docs, user_id, updated, new_id)
