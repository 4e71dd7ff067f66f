"""In-process document and blob stores."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, Sequence
from urllib.parse import quote, unquote

from mototask.errors import FetchError, NotFoundError, StoreTransactionError

from .documents import BatchOp, Document, WriteBatch, resolve_timestamps
from .paths import split_path


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryDocumentStore:
    """Dict-backed document store. Batches are staged on a copy and swapped in."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._docs: dict[str, dict[str, Any]] = {}
        self._clock = clock or _utcnow

    async def get(self, path: str) -> dict[str, Any] | None:
        data = self._docs.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def set(self, path: str, data: dict[str, Any]) -> None:
        await self.commit([BatchOp("set", path, data)])

    async def update(self, path: str, data: dict[str, Any]) -> None:
        if path not in self._docs:
            raise NotFoundError(path)
        await self.commit([BatchOp("update", path, data)])

    async def delete(self, path: str) -> None:
        await self.commit([BatchOp("delete", path)])

    async def list(self, collection_path: str) -> list[Document]:
        collection_path = collection_path.strip("/")
        docs = []
        for path, data in self._docs.items():
            parent, doc_id = split_path(path)
            if parent == collection_path:
                docs.append(Document(id=doc_id, path=path, data=copy.deepcopy(data)))
        return sorted(docs, key=lambda d: d.id)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def commit(self, ops: Sequence[BatchOp]) -> None:
        now = self._clock()
        staged = dict(self._docs)
        for op in ops:
            if op.kind == "set":
                staged[op.path] = resolve_timestamps(op.data or {}, now)
            elif op.kind == "update":
                if op.path not in staged:
                    raise StoreTransactionError(f"Cannot update missing document {op.path}")
                staged[op.path] = {**staged[op.path], **resolve_timestamps(op.data or {}, now)}
            elif op.kind == "delete":
                staged.pop(op.path, None)
            else:
                raise StoreTransactionError(f"Unknown batch operation {op.kind!r}")
        self._docs = staged

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Deep copy of every stored document keyed by path."""
        return copy.deepcopy(self._docs)


class MemoryBlobStore:
    """Dict-backed blob store handing out `memory://` URLs."""

    def __init__(self, base_url: str = "memory://blobs"):
        self._base_url = base_url.rstrip("/")
        self._objects: dict[str, bytes] = {}

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{quote(path.strip('/'))}"

    def path_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(self._base_url + "/"):
            return unquote(path_or_url[len(self._base_url) + 1:])
        return path_or_url.strip("/")

    async def put(self, path: str, data: bytes) -> str:
        self._objects[path.strip("/")] = bytes(data)
        return self.url_for(path)

    async def delete(self, path_or_url: str) -> None:
        path = self.path_for(path_or_url)
        if path not in self._objects:
            raise NotFoundError(path)
        del self._objects[path]

    async def get(self, url: str) -> bytes:
        path = self.path_for(url)
        if path not in self._objects:
            raise FetchError(url, "object not found")
        return self._objects[path]

    def exists(self, path_or_url: str) -> bool:
        return self.path_for(path_or_url) in self._objects

    def __len__(self) -> int:
        return len(self._objects)
