"""
SQLite document store.

Stores every document as a JSON body keyed by its full path, with the parent
collection path indexed for listing. A write batch runs as one SQL
transaction.
"""

from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from typing import Any, Sequence

import aiosqlite
import structlog

from mototask.errors import NotFoundError, StoreReadError, StoreTransactionError

from .documents import BatchOp, Document, WriteBatch, resolve_timestamps
from .paths import split_path

log = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    path        TEXT PRIMARY KEY,
    collection  TEXT NOT NULL,
    doc_id      TEXT NOT NULL,
    body        TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_collection
    ON documents(collection, doc_id);
"""

_TS_KEY = "$timestamp"


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_TS_KEY: value.isoformat()}
    raise TypeError(f"Unsupported document value: {type(value).__name__}")


def _decode(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and _TS_KEY in obj:
        return datetime.fromisoformat(obj[_TS_KEY])
    return obj


def _dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, default=_encode, sort_keys=True)


def _loads(body: str) -> dict[str, Any]:
    return json.loads(body, object_hook=_decode)


class SqliteDocumentStore:
    """Async SQLite-backed document store."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        # Reads and batches share one connection. A reader must never see a
        # batch's uncommitted rows, so both go through this lock.
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        if self._db_path != ":memory:":
            os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> "SqliteDocumentStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # --- Reads ---

    async def _fetch(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        assert self._db
        async with self._lock:
            try:
                cursor = await self._db.execute(sql, params)
                return list(await cursor.fetchall())
            except aiosqlite.Error as exc:
                log.error("store.read_failed", error=str(exc))
                raise StoreReadError(f"Document read failed: {exc}") from exc

    async def get(self, path: str) -> dict[str, Any] | None:
        rows = await self._fetch(
            "SELECT body FROM documents WHERE path = ?", (path.strip("/"),)
        )
        return _loads(rows[0]["body"]) if rows else None

    async def list(self, collection_path: str) -> list[Document]:
        rows = await self._fetch(
            "SELECT path, doc_id, body FROM documents WHERE collection = ? ORDER BY doc_id",
            (collection_path.strip("/"),),
        )
        return [Document(id=r["doc_id"], path=r["path"], data=_loads(r["body"])) for r in rows]

    # --- Writes ---

    async def set(self, path: str, data: dict[str, Any]) -> None:
        await self.commit([BatchOp("set", path, data)])

    async def update(self, path: str, data: dict[str, Any]) -> None:
        if await self.get(path) is None:
            raise NotFoundError(path)
        await self.commit([BatchOp("update", path, data)])

    async def delete(self, path: str) -> None:
        await self.commit([BatchOp("delete", path)])

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def commit(self, ops: Sequence[BatchOp]) -> None:
        assert self._db
        now = datetime.now(timezone.utc)
        async with self._lock:
            try:
                for op in ops:
                    await self._apply(op, now)
                await self._db.commit()
            except (aiosqlite.Error, TypeError, ValueError) as exc:
                await self._db.rollback()
                log.error("store.batch_failed", ops=len(ops), error=str(exc))
                raise StoreTransactionError(f"Batch of {len(ops)} operation(s) failed: {exc}") from exc
            except BaseException:
                # Includes cancellation; an open transaction would otherwise
                # be committed by the next batch.
                await self._db.rollback()
                raise

    async def _apply(self, op: BatchOp, now: datetime) -> None:
        assert self._db
        path = op.path.strip("/")
        if op.kind == "delete":
            await self._db.execute("DELETE FROM documents WHERE path = ?", (path,))
            return

        data = resolve_timestamps(op.data or {}, now)
        if op.kind == "update":
            cursor = await self._db.execute(
                "SELECT body FROM documents WHERE path = ?", (path,)
            )
            row = await cursor.fetchone()
            if row is None:
                raise StoreTransactionError(f"Cannot update missing document {path}")
            data = {**_loads(row["body"]), **data}
        elif op.kind != "set":
            raise StoreTransactionError(f"Unknown batch operation {op.kind!r}")

        collection, doc_id = split_path(path)
        await self._db.execute(
            """INSERT INTO documents (path, collection, doc_id, body, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(path) DO UPDATE SET body=excluded.body, updated_at=excluded.updated_at""",
            (path, collection, doc_id, _dumps(data), now.isoformat()),
        )
