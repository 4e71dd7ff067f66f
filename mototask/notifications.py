"""
User-facing operation outcomes.

Every lifecycle, export and report call concludes with exactly one Outcome:
success, success-with-warnings, or failure.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from .errors import (
    MotoTaskError,
    NotFoundError,
    PartialCleanupFailure,
    StoreReadError,
    StoreTransactionError,
    ValidationError,
)


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


class ItemFailure(BaseModel):
    item: str
    reason: str


class Outcome(BaseModel):
    status: OutcomeStatus
    title: str
    description: str
    counts: Dict[str, int] = Field(default_factory=dict)
    failures: List[ItemFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILURE


def failures_from(items: dict[str, str]) -> list[ItemFailure]:
    return [ItemFailure(item=k, reason=v) for k, v in items.items()]


def outcome_for_error(action: str, exc: Exception) -> Outcome:
    """Map an error raised by `action` to a failure outcome."""
    if isinstance(exc, PartialCleanupFailure):
        return Outcome(
            status=OutcomeStatus.FAILURE,
            title=f"{action} incomplete",
            description=(
                f"Photos for task {exc.task_id} were cleaned up but its records were not removed. "
                "Retry to finish removing the records."
            ),
            counts={"blobs_deleted": len(exc.deleted_blobs)},
            failures=failures_from(exc.failed_blobs),
        )
    if isinstance(exc, ValidationError):
        description = f"Invalid input: {exc}"
    elif isinstance(exc, NotFoundError):
        description = f"Record not found: {exc.path}"
    elif isinstance(exc, StoreReadError):
        description = f"Records could not be loaded: {exc}"
    elif isinstance(exc, StoreTransactionError):
        description = f"No changes were saved: {exc}"
    elif isinstance(exc, MotoTaskError):
        description = str(exc)
    else:
        description = "An unexpected error occurred."
    return Outcome(status=OutcomeStatus.FAILURE, title=f"{action} failed", description=description)
