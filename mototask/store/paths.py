"""Document and blob path helpers. Every relationship is a path string."""

from __future__ import annotations

TASKS_COLLECTION = "motoTasks"
SUBMISSIONS_COLLECTION = "submissions"


def tasks_path(user_id: str) -> str:
    return f"users/{user_id}/{TASKS_COLLECTION}"


def task_path(user_id: str, task_id: str) -> str:
    return f"{tasks_path(user_id)}/{task_id}"


def submissions_path(user_id: str, task_id: str) -> str:
    return f"{task_path(user_id, task_id)}/{SUBMISSIONS_COLLECTION}"


def submission_path(user_id: str, task_id: str, submission_id: str) -> str:
    return f"{submissions_path(user_id, task_id)}/{submission_id}"


def photo_blob_path(task_id: str, submission_id: str, index: int, timestamp_ms: int) -> str:
    """Blob path for the `index`-th photo of a submission."""
    return f"{SUBMISSIONS_COLLECTION}/{task_id}/{submission_id}/{timestamp_ms}_{index}.jpg"


def split_path(path: str) -> tuple[str, str]:
    """Split a document path into (collection path, document id)."""
    parent, _, doc_id = path.strip("/").rpartition("/")
    return parent, doc_id
