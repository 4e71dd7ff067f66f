"""Failure-injecting stores for tests."""

from __future__ import annotations

from typing import Sequence

from mototask.errors import FetchError, StoreTransactionError
from mototask.store.documents import BatchOp, Document
from mototask.store.memory import MemoryBlobStore, MemoryDocumentStore


class FakeDocumentStore(MemoryDocumentStore):
    def __init__(self, clock=None):
        super().__init__(clock)
        self.fail_commit = False
        self.fail_list = False
        self.commits = 0

    async def list(self, collection_path: str) -> list[Document]:
        if self.fail_list:
            raise ConnectionError("document store unavailable")
        return await super().list(collection_path)

    async def commit(self, ops: Sequence[BatchOp]) -> None:
        if self.fail_commit:
            raise StoreTransactionError("simulated commit failure")
        await super().commit(ops)
        self.commits += 1


class FakeBlobStore(MemoryBlobStore):
    def __init__(self):
        super().__init__()
        self.fail_delete: set[str] = set()
        self.fail_get: set[str] = set()
        self.fail_put: set[str] = set()
        self.delete_calls: list[str] = []

    async def put(self, path: str, data: bytes) -> str:
        if path in self.fail_put:
            raise PermissionError("storage/unauthorized")
        return await super().put(path, data)

    async def delete(self, path_or_url: str) -> None:
        self.delete_calls.append(path_or_url)
        if path_or_url in self.fail_delete:
            raise PermissionError("storage/unauthorized")
        await super().delete(path_or_url)

    async def get(self, url: str) -> bytes:
        if url in self.fail_get:
            raise FetchError(url, "HTTP 503")
        return await super().get(url)
