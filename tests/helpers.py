"""Builders for tasks, submissions and photos."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from mototask.schemas import Task, TaskStatus
from mototask.services.lifecycle import create_task
from mototask.store.paths import photo_blob_path, submission_path, task_path

USER_ID = "user-1"
T0 = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_task(task_id: str = "task-1", **overrides) -> Task:
    fields = {
        "id": task_id,
        "vehicle_number": "KA-01-1234",
        "name": "Asha Rao",
        "reg_number": "REG-001",
        "task_description": "Check front bumper",
        "status": TaskStatus.OPEN,
        "is_public": True,
        "public_link": f"https://app.example.com/verify/{USER_ID}/{task_id}",
    }
    fields.update(overrides)
    return Task(**fields)


async def seed_task(docs, task: Task) -> Task:
    await create_task(docs, USER_ID, task)
    data = await docs.get(task_path(USER_ID, task.id))
    return task.model_copy(update={"created_at": data["createdAt"], "updated_at": data["updatedAt"]})


async def seed_submission(
    docs,
    blobs,
    task_id: str,
    submission_id: str,
    photos: int = 0,
    verifier: str = "Ravi",
    notes: str = "All good",
) -> list[str]:
    urls = []
    for i in range(photos):
        path = photo_blob_path(task_id, submission_id, i, 1700000000000)
        urls.append(await blobs.put(path, f"jpeg-{submission_id}-{i}".encode()))
    await docs.set(
        submission_path(USER_ID, task_id, submission_id),
        {"verifierName": verifier, "notes": notes, "photoUrls": urls, "createdAt": T0},
    )
    return urls
