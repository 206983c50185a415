from __future__ import annotations

"""
Object storage backends for media delivery.

`ObjectStorage` is the seam the delivery resolver and the video service talk
to. Two implementations ship:

- `LocalObjectStorage`: files under `MEDIA_ROOT` (dev, single-node installs)
- `S3ObjectStorage`: boto3 via `app.utils.aws.S3Client`

Errors surface as `StorageError`; a missing object is `None` from `stat`,
never an exception.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Protocol
from urllib.parse import quote, urlencode

from app.core.config import settings
from app.utils.aws import S3Client, S3StorageError

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Backend failed (I/O, network, credentials)."""


@dataclass(frozen=True)
class ObjectStat:
    size: int
    content_type: Optional[str] = None


class ObjectStorage(Protocol):
    async def stat(self, key: str) -> Optional[ObjectStat]: ...

    def iter_range(self, key: str, start: int, end: int, *, chunk_size: int) -> Iterator[bytes]: ...

    async def signed_url(self, key: str, *, ttl_seconds: int) -> str: ...

    async def put_object(self, key: str, data: bytes, *, content_type: str) -> None: ...

    async def delete_object(self, key: str) -> None: ...


# ─────────────────────────────────────────────────────────────
# 💽 Local filesystem
# ─────────────────────────────────────────────────────────────
class LocalObjectStorage:
    """Filesystem-backed storage rooted at `root`.

    Signed references are HMAC-signed paths under `/media/`; verifying them
    is the job of whatever serves that prefix.
    """

    def __init__(self, root: Path, *, signing_key: str, base_url: str = "/media") -> None:
        self.root = Path(root)
        self._signing_key = signing_key.encode("utf-8")
        self._base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        p = (self.root / key.lstrip("/")).resolve()
        if self.root.resolve() not in p.parents:
            raise StorageError("Invalid storage key")
        return p

    async def stat(self, key: str) -> Optional[ObjectStat]:
        p = self._path(key)
        try:
            st = await asyncio.to_thread(p.stat)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"stat failed: {e}") from e
        return ObjectStat(size=st.st_size)

    def iter_range(self, key: str, start: int, end: int, *, chunk_size: int) -> Iterator[bytes]:
        """Yield ``start..end`` inclusive; the handle is closed on exhaustion or close()."""
        try:
            fh = open(self._path(key), "rb")
        except FileNotFoundError as e:
            raise StorageError(f"object vanished: {key}") from e
        try:
            fh.seek(start)
            remaining = end - start + 1
            while remaining > 0:
                chunk = fh.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
        finally:
            fh.close()

    async def signed_url(self, key: str, *, ttl_seconds: int) -> str:
        expires = int(time.time()) + int(ttl_seconds)
        msg = f"{key}:{expires}".encode("utf-8")
        sig = hmac.new(self._signing_key, msg, hashlib.sha256).hexdigest()
        return f"{self._base_url}/{quote(key.lstrip('/'))}?{urlencode({'expires': expires, 'sig': sig})}"

    async def put_object(self, key: str, data: bytes, *, content_type: str) -> None:
        p = self._path(key)

        def _write() -> None:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"write failed: {e}") from e

    async def delete_object(self, key: str) -> None:
        p = self._path(key)
        try:
            await asyncio.to_thread(p.unlink, True)
        except OSError as e:
            raise StorageError(f"delete failed: {e}") from e


# ─────────────────────────────────────────────────────────────
# ☁️ S3
# ─────────────────────────────────────────────────────────────
class S3ObjectStorage:
    """S3-backed storage; blocking boto3 calls run in a worker thread."""

    def __init__(self, client: Optional[S3Client] = None) -> None:
        self._s3 = client or S3Client()

    async def stat(self, key: str) -> Optional[ObjectStat]:
        try:
            meta = await asyncio.to_thread(self._s3.head, key)
        except S3StorageError as e:
            raise StorageError(str(e)) from e
        if meta is None:
            return None
        return ObjectStat(size=int(meta.get("ContentLength", 0)), content_type=meta.get("ContentType"))

    def iter_range(self, key: str, start: int, end: int, *, chunk_size: int) -> Iterator[bytes]:
        try:
            yield from self._s3.iter_range(key, start, end, chunk_size=chunk_size)
        except S3StorageError as e:
            raise StorageError(str(e)) from e

    async def signed_url(self, key: str, *, ttl_seconds: int) -> str:
        try:
            return await asyncio.to_thread(lambda: self._s3.presigned_get(key, expires_in=ttl_seconds))
        except S3StorageError as e:
            raise StorageError(str(e)) from e

    async def put_object(self, key: str, data: bytes, *, content_type: str) -> None:
        try:
            await asyncio.to_thread(lambda: self._s3.put_bytes(key, data, content_type=content_type))
        except S3StorageError as e:
            raise StorageError(str(e)) from e

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._s3.delete, key)
        except S3StorageError as e:
            raise StorageError(str(e)) from e


# ─────────────────────────────────────────────────────────────
# 🔌 Dependency
# ─────────────────────────────────────────────────────────────
_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    """FastAPI dependency returning the configured backend (built once)."""
    global _storage
    if _storage is None:
        if settings.STORAGE_BACKEND == "s3":
            _storage = S3ObjectStorage()
        else:
            _storage = LocalObjectStorage(
                settings.MEDIA_ROOT,
                signing_key=settings.JWT_SECRET_KEY.get_secret_value(),
            )
        logger.info("object storage backend=%s", settings.STORAGE_BACKEND)
    return _storage


__all__ = [
    "StorageError",
    "ObjectStat",
    "ObjectStorage",
    "LocalObjectStorage",
    "S3ObjectStorage",
    "get_storage",
]
