"""
Public submission intake: a verifier's notes and photos against a shared task.

Photos are uploaded first; the submission document and the task's status
flip to Completed are then committed together.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from mototask.errors import NotFoundError, ValidationError
from mototask.notifications import Outcome, OutcomeStatus
from mototask.schemas import MAX_PHOTOS_PER_SUBMISSION, Submission, TaskStatus
from mototask.store.blobs import BlobStore
from mototask.store.documents import SERVER_TIMESTAMP, DocumentStore, new_document_id
from mototask.store.paths import photo_blob_path, submission_path, task_path

from .fanout import gather_settled

log = structlog.get_logger()


@dataclass
class SubmissionResult:
    task_id: str
    submission: Submission

    def outcome(self) -> Outcome:
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Submission successful",
            description="Your verification details have been submitted.",
            counts={"photos": len(self.submission.photo_urls)},
        )


async def submit_verification(
    docs: DocumentStore,
    blobs: BlobStore,
    user_id: str,
    task_id: str,
    verifier_name: str,
    notes: str,
    photos: Sequence[bytes] = (),
    *,
    max_concurrency: int | None = None,
) -> SubmissionResult:
    if len(photos) > MAX_PHOTOS_PER_SUBMISSION:
        raise ValidationError(
            f"At most {MAX_PHOTOS_PER_SUBMISSION} photos per submission, got {len(photos)}"
        )
    submission_id = new_document_id()
    try:
        submission = Submission(id=submission_id, verifier_name=verifier_name, notes=notes)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid submission: {exc.error_count()} field error(s)") from exc

    parent = task_path(user_id, task_id)
    if await docs.get(parent) is None:
        raise NotFoundError(parent)

    stamp = int(time.time() * 1000)
    paths = [photo_blob_path(task_id, submission_id, i, stamp) for i in range(len(photos))]
    uploads = await gather_settled(
        range(len(photos)), lambda i: blobs.put(paths[i], photos[i]), max_concurrency
    )
    failures = [u for u in uploads if not u.ok]
    if failures:
        # Nothing references the uploaded photos yet; remove them before giving up.
        uploaded = [u.value for u in uploads if u.ok]
        await gather_settled(uploaded, blobs.delete, max_concurrency)
        log.error(
            "submission.upload_failed",
            task_id=task_id,
            failed=len(failures),
            error=str(failures[0].error),
        )
        raise failures[0].error

    submission.photo_urls = [u.value for u in uploads]
    body = submission.model_dump(by_alias=True, exclude={"created_at"})
    body["createdAt"] = SERVER_TIMESTAMP

    batch = docs.batch()
    batch.set(submission_path(user_id, task_id, submission_id), body)
    batch.update(parent, {"status": TaskStatus.COMPLETED.value, "updatedAt": SERVER_TIMESTAMP})
    await batch.commit()

    log.info("submission.created", task_id=task_id, submission_id=submission_id, photos=len(photos))
    return SubmissionResult(task_id=task_id, submission=submission)
