"""
Blob store interface and the filesystem-backed implementation.

The blob store knows nothing about the document hierarchy. Objects are
addressed by path and handed out as URLs; those URLs are what submissions
keep in `photoUrls`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote, urlsplit

import httpx
import structlog

from mototask.errors import FetchError, NotFoundError, ValidationError

log = structlog.get_logger()


class BlobStore(Protocol):
    async def put(self, path: str, data: bytes) -> str: ...

    async def delete(self, path_or_url: str) -> None: ...

    async def get(self, url: str) -> bytes: ...


def blob_path_from_url(url: str) -> str | None:
    """
    Recover the object path from a blob URL.

    Handles plain `https://host/<path>` URLs and download URLs that carry the
    encoded object path after `/o/` (`.../o/submissions%2Ft1%2Fs1%2F1_0.jpg`).
    Returns None when no path can be recovered.
    """
    parts = urlsplit(url)
    if not parts.scheme:
        return url.strip("/") or None
    raw = parts.path
    if "/o/" in raw:
        raw = raw.split("/o/", 1)[1]
    path = unquote(raw).strip("/")
    return path or None


class LocalBlobStore:
    """
    Blobs stored as files under `root` and published at `base_url`.

    Downloads go over HTTP so the same code path serves URLs issued by other
    stores.
    """

    def __init__(
        self,
        root: str | Path,
        base_url: str,
        *,
        request_timeout: float = 30,
        verify_tls: bool = True,
        client: httpx.AsyncClient | None = None,
    ):
        self._root = Path(root).resolve()
        self._base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout
        self._verify_tls = verify_tls
        self._client = client
        self._owns_client = client is None

    async def open(self) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._request_timeout),
                verify=self._verify_tls,
            )
            self._owns_client = True

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{quote(path.strip('/'))}"

    def path_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(self._base_url + "/"):
            return unquote(path_or_url[len(self._base_url) + 1:])
        if "://" in path_or_url:
            path = blob_path_from_url(path_or_url)
            if path is None:
                raise ValidationError(f"Cannot resolve blob path from {path_or_url!r}")
            return path
        return path_or_url.strip("/")

    def _file_for(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root):
            raise ValidationError(f"Blob path escapes store root: {path!r}")
        return target

    async def put(self, path: str, data: bytes) -> str:
        target = self._file_for(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.to_thread(_write)
        log.debug("blob.stored", path=path, size=len(data))
        return self.url_for(path)

    async def delete(self, path_or_url: str) -> None:
        path = self.path_for(path_or_url)
        target = self._file_for(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as exc:
            raise NotFoundError(path) from exc

    async def get(self, url: str) -> bytes:
        assert self._client
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__) from exc
        return resp.content
