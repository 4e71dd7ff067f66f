"""Read helpers shared by the lifecycle, export and intake services."""

from __future__ import annotations

from mototask.errors import NotFoundError
from mototask.schemas import Submission, Task
from mototask.store.documents import Document, DocumentStore
from mototask.store.paths import submissions_path, task_path, tasks_path


async def get_task(docs: DocumentStore, user_id: str, task_id: str) -> Task:
    path = task_path(user_id, task_id)
    data = await docs.get(path)
    if data is None:
        raise NotFoundError(path)
    return Task.from_document(task_id, data)


async def list_tasks(docs: DocumentStore, user_id: str) -> list[Task]:
    return [Task.from_document(d.id, d.data) for d in await docs.list(tasks_path(user_id))]


async def list_submission_documents(
    docs: DocumentStore, user_id: str, task_id: str
) -> list[Document]:
    """Raw submission documents, bodies untouched."""
    return await docs.list(submissions_path(user_id, task_id))


async def list_submissions(docs: DocumentStore, user_id: str, task_id: str) -> list[Submission]:
    return [
        Submission.from_document(d.id, d.data)
        for d in await list_submission_documents(docs, user_id, task_id)
    ]
