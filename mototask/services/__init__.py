"""Task lifecycle, submission intake, archive export and report services."""

from .archive import ArchiveResult, build_archive
from .lifecycle import (
    DeleteResult,
    MigrationResult,
    build_public_link,
    create_task,
    delete_task,
    delete_task_documents,
    migrate_task,
    new_task_id,
    regenerate_public_link,
    update_task,
)
from .queries import get_task, list_submissions, list_tasks
from .reports import EmptyResult, Report, build_report, period_bounds
from .submissions import SubmissionResult, submit_verification

__all__ = [
    "ArchiveResult",
    "DeleteResult",
    "EmptyResult",
    "MigrationResult",
    "Report",
    "SubmissionResult",
    "build_archive",
    "build_public_link",
    "build_report",
    "create_task",
    "delete_task",
    "delete_task_documents",
    "get_task",
    "list_submissions",
    "list_tasks",
    "migrate_task",
    "new_task_id",
    "period_bounds",
    "regenerate_public_link",
    "submit_verification",
    "update_task",
]
