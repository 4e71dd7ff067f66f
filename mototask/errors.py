"""
Error taxonomy for lifecycle, export and report operations.

Validation and transaction errors abort an operation with no partial effect.
The two partial-failure types are also attached to otherwise successful
results so per-item failures are never dropped.
"""

from __future__ import annotations


class MotoTaskError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(MotoTaskError):
    """An entity is malformed or missing required fields."""


class NotFoundError(MotoTaskError):
    """A referenced document or blob does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Not found: {path}")
        self.path = path


class FetchError(MotoTaskError):
    """A blob could not be downloaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class StoreTransactionError(MotoTaskError):
    """An atomic batch failed to commit. Nothing was persisted."""


class StoreReadError(MotoTaskError):
    """The document store could not be read."""


class SerializationError(MotoTaskError):
    """A spreadsheet, archive or document could not be rendered."""


class PartialCleanupFailure(MotoTaskError):
    """
    Best-effort blob cleanup during a cascading delete did not fully succeed.

    `documents_deleted` tells whether the task and submission documents were
    removed. When it is False the blob phase already ran, so the caller should
    retry only the document deletion.
    """

    def __init__(
        self,
        task_id: str,
        *,
        documents_deleted: bool,
        deleted_blobs: list[str] | None = None,
        failed_blobs: dict[str, str] | None = None,
    ):
        self.task_id = task_id
        self.documents_deleted = documents_deleted
        self.deleted_blobs = list(deleted_blobs or [])
        self.failed_blobs = dict(failed_blobs or {})
        if documents_deleted:
            msg = f"Task {task_id} deleted but {len(self.failed_blobs)} photo(s) could not be removed"
        else:
            msg = f"Task {task_id} documents were not deleted after photo cleanup"
        super().__init__(msg)


class PartialExportFailure(MotoTaskError):
    """Some photos could not be fetched while building an archive."""

    def __init__(self, failed_urls: dict[str, str]):
        self.failed_urls = dict(failed_urls)
        super().__init__(f"{len(self.failed_urls)} photo(s) could not be downloaded")
