"""Task and submission schemas, stored with camelCase field names."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError

MAX_PHOTOS_PER_SUBMISSION = 10


class TaskStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class ReportPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ReportFormat(str, Enum):
    SPREADSHEET = "spreadsheet"
    PDF = "pdf"


class _StoredModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _invalid(kind: str, key: str, exc: PydanticValidationError) -> ValidationError:
    fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
    return ValidationError(f"Invalid {kind} {key!r}: {fields}")


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------


class Task(_StoredModel):
    """A vehicle verification job. `id` always equals the document key."""

    id: str = Field(min_length=1)
    vehicle_number: str = Field(min_length=1)
    name: str = Field(min_length=1)
    reg_number: str = Field(min_length=1)
    task_description: Optional[str] = None
    status: TaskStatus = TaskStatus.OPEN
    is_public: bool = False
    public_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, key: str, data: dict[str, Any]) -> "Task":
        embedded = data.get("id")
        if embedded is not None and embedded != key:
            raise ValidationError(f"Task document {key!r} embeds mismatched id {embedded!r}")
        try:
            return cls.model_validate({**data, "id": key})
        except PydanticValidationError as exc:
            raise _invalid("task", key, exc) from exc

    @classmethod
    def parse(cls, **fields: Any) -> "Task":
        """Build a task from keyword fields, raising our ValidationError."""
        try:
            return cls(**fields)
        except PydanticValidationError as exc:
            raise _invalid("task", str(fields.get("id", "")), exc) from exc

    def to_document(self) -> dict[str, Any]:
        """Document body without the store-assigned timestamps."""
        data = self.model_dump(by_alias=True, exclude={"created_at", "updated_at"})
        data["status"] = self.status.value
        return data


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class Submission(_StoredModel):
    """One verifier's notes and photos against a task."""

    id: str = Field(min_length=1, exclude=True)
    verifier_name: str = Field(min_length=1)
    notes: str = Field(min_length=1)
    photo_urls: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS_PER_SUBMISSION)
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, key: str, data: dict[str, Any]) -> "Submission":
        try:
            return cls.model_validate({**data, "id": key})
        except PydanticValidationError as exc:
            raise _invalid("submission", key, exc) from exc
