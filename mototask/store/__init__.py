"""Document and blob store clients."""

from __future__ import annotations

from mototask.config import Settings

from .blobs import BlobStore, LocalBlobStore, blob_path_from_url
from .documents import SERVER_TIMESTAMP, BatchOp, Document, DocumentStore, WriteBatch
from .memory import MemoryBlobStore, MemoryDocumentStore
from .sqlite import SqliteDocumentStore


async def create_document_store(settings: Settings) -> DocumentStore:
    """Build and open the configured document store backend."""
    if settings.store.backend == "sqlite":
        store = SqliteDocumentStore(settings.store.sqlite_path)
        await store.open()
        return store
    return MemoryDocumentStore()


async def create_blob_store(settings: Settings) -> BlobStore:
    """Build and open the configured blob store backend."""
    if settings.blobs.backend == "local":
        store = LocalBlobStore(
            settings.blobs.root,
            settings.blobs.base_url,
            request_timeout=settings.blobs.request_timeout_seconds,
            verify_tls=settings.blobs.verify_tls,
        )
        await store.open()
        return store
    return MemoryBlobStore()


__all__ = [
    "SERVER_TIMESTAMP",
    "BatchOp",
    "BlobStore",
    "Document",
    "DocumentStore",
    "LocalBlobStore",
    "MemoryBlobStore",
    "MemoryDocumentStore",
    "SqliteDocumentStore",
    "WriteBatch",
    "blob_path_from_url",
    "create_blob_store",
    "create_document_store",
]
