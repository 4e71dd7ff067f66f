"""Tests for dashboard actions and their outcomes."""

import io
import zipfile
from datetime import datetime, timezone

import pytest

from mototask.actions import TaskActions
from mototask.config import Settings
from mototask.notifications import OutcomeStatus
from mototask.schemas import TaskStatus
from mototask.services.reports import EmptyResult
from mototask.store import SqliteDocumentStore

from .helpers import USER_ID, make_task, seed_submission, seed_task


@pytest.fixture
def actions(docs, blobs):
    settings = Settings(links={"public_base_url": "https://verify.example.com"})
    return TaskActions(settings, docs, blobs, USER_ID)


async def test_delete_success(actions, docs, blobs):
    task = await seed_task(docs, make_task())
    await seed_submission(docs, blobs, task.id, "sub-1", photos=1)

    result = await actions.delete(task)

    assert result.outcome.status == OutcomeStatus.SUCCESS
    assert result.outcome.title == "Task successfully deleted"
    assert result.payload.submissions_deleted == 1


async def test_delete_commit_failure_then_retry(actions, docs, blobs):
    task = await seed_task(docs, make_task())
    await seed_submission(docs, blobs, task.id, "sub-1", photos=2)
    docs.fail_commit = True

    failed = await actions.delete(task)

    assert failed.outcome.status == OutcomeStatus.FAILURE
    assert failed.outcome.counts == {"blobs_deleted": 2}
    assert "Retry" in failed.outcome.description

    docs.fail_commit = False
    retried = await actions.retry_delete_documents(task.id)

    assert retried.outcome.status == OutcomeStatus.SUCCESS
    assert retried.payload == 1


async def test_regenerate_link(actions, docs):
    task = await seed_task(docs, make_task(status=TaskStatus.COMPLETED))

    result = await actions.regenerate_link(task)

    assert result.outcome.ok
    assert result.payload.task.public_link.startswith(f"https://verify.example.com/verify/{USER_ID}/")
    assert result.payload.task.status == TaskStatus.OPEN


async def test_regenerate_link_missing_task(actions):
    result = await actions.regenerate_link(make_task("ghost"))

    assert result.outcome.status == OutcomeStatus.FAILURE
    assert result.outcome.title == "Regenerate link failed"
    assert result.payload is None


async def test_export_all_without_tasks(actions):
    result = await actions.export_all()

    assert result.outcome.status == OutcomeStatus.FAILURE
    assert "no tasks" in result.outcome.description


async def test_export_task_with_missing_photo(actions, docs, blobs):
    task = await seed_task(docs, make_task())
    urls = await seed_submission(docs, blobs, task.id, "sub-1", photos=2)
    blobs.fail_get.add(urls[0])

    result = await actions.export_task(task)

    assert result.outcome.status == OutcomeStatus.WARNING
    assert [f.item for f in result.outcome.failures] == [urls[0]]


async def test_export_all(actions, docs):
    await seed_task(docs, make_task("task-1"))
    await seed_task(docs, make_task("task-2"))

    result = await actions.export_all()

    assert result.outcome.status == OutcomeStatus.SUCCESS
    assert result.payload.filename == "all_tasks_archive.zip"
    assert result.payload.tasks == 2


async def test_report_empty(actions):
    now = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    result = await actions.report("daily", "pdf", now=now)

    assert isinstance(result.payload, EmptyResult)
    assert result.outcome.title == "No tasks found"


async def test_report_invalid_period(actions):
    result = await actions.report("hourly", "pdf")

    assert result.outcome.status == OutcomeStatus.FAILURE
    assert result.outcome.title == "Report failed"


async def test_export_all_with_one_task_uses_all_tasks_layout(actions, docs, blobs):
    task = await seed_task(docs, make_task("only"))
    await seed_submission(docs, blobs, task.id, "sub-1", photos=1)

    result = await actions.export_all()

    assert result.payload.filename == "all_tasks_archive.zip"
    names = zipfile.ZipFile(io.BytesIO(result.payload.content)).namelist()
    assert "tasks_data.xlsx" in names
    assert "task_only/photos/sub-1_1700000000000_0.jpg" in names


@pytest.mark.parametrize("action", ["delete", "export_task"])
async def test_listing_failure_ends_in_failure_outcome(actions, docs, action):
    task = await seed_task(docs, make_task())
    docs.fail_list = True

    result = await getattr(actions, action)(task)

    assert result.outcome.status == OutcomeStatus.FAILURE
    assert result.outcome.description == "An unexpected error occurred."
    assert result.payload is None


async def test_report_listing_failure_ends_in_failure_outcome(actions, docs):
    docs.fail_list = True

    result = await actions.report("daily", "spreadsheet")

    assert result.outcome.status == OutcomeStatus.FAILURE


async def test_unreadable_sqlite_store_ends_in_failure_outcome(tmp_path, blobs):
    async with SqliteDocumentStore(str(tmp_path / "docs.db")) as docs:
        task = await seed_task(docs, make_task())
        await docs._db.execute("DROP TABLE documents")
        actions = TaskActions(Settings(), docs, blobs, USER_ID)

        result = await actions.delete(task)

    assert result.outcome.status == OutcomeStatus.FAILURE
    assert result.outcome.title == "Delete task failed"
    assert result.outcome.description.startswith("Records could not be loaded")
