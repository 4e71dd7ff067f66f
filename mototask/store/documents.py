"""
Document store interface: path-addressed documents and atomic write batches.

Documents live in collections addressed by slash-separated paths
(`users/{uid}/motoTasks/{taskId}`). Deleting a document never touches the
collections nested beneath it.
"""

from __future__ import annotations

import copy
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol, Sequence

from mototask.errors import StoreTransactionError


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Replaced with the store's clock when a document is written.
SERVER_TIMESTAMP: Any = _ServerTimestamp()


def resolve_timestamps(data: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Copy `data`, replacing top-level SERVER_TIMESTAMP values with `now`."""
    return {
        key: now if value is SERVER_TIMESTAMP else copy.deepcopy(value)
        for key, value in data.items()
    }


@dataclass(frozen=True)
class Document:
    id: str
    path: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchOp:
    kind: Literal["set", "update", "delete"]
    path: str
    data: dict[str, Any] | None = None


class DocumentStore(Protocol):
    async def get(self, path: str) -> dict[str, Any] | None: ...

    async def set(self, path: str, data: dict[str, Any]) -> None: ...

    async def update(self, path: str, data: dict[str, Any]) -> None: ...

    async def delete(self, path: str) -> None: ...

    async def list(self, collection_path: str) -> list[Document]: ...

    def batch(self) -> "WriteBatch": ...

    async def commit(self, ops: Sequence[BatchOp]) -> None: ...


class WriteBatch:
    """
    Ordered set/update/delete operations committed all-or-nothing.

    A batch can be committed once. A failed commit raises
    StoreTransactionError and leaves the store untouched.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._ops: list[BatchOp] = []
        self._committed = False

    def set(self, path: str, data: dict[str, Any]) -> "WriteBatch":
        self._ops.append(BatchOp("set", path, dict(data)))
        return self

    def update(self, path: str, data: dict[str, Any]) -> "WriteBatch":
        self._ops.append(BatchOp("update", path, dict(data)))
        return self

    def delete(self, path: str) -> "WriteBatch":
        self._ops.append(BatchOp("delete", path))
        return self

    @property
    def ops(self) -> list[BatchOp]:
        return list(self._ops)

    def __len__(self) -> int:
        return len(self._ops)

    async def commit(self) -> None:
        if self._committed:
            raise StoreTransactionError("Batch already committed")
        self._committed = True
        await self._store.commit(self._ops)


_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


def new_document_id() -> str:
    """Opaque 20-character document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
