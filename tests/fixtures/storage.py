# tests/fixtures/storage.py
"""
📦 Storage fixtures
- `media_storage`: real `LocalObjectStorage` rooted in a per-test directory
- `BrokenStorage`: every call fails like an unreachable backend
"""

from typing import Optional

import pytest

from app.services.storage import LocalObjectStorage, ObjectStat, StorageError

SAMPLE_MEDIA = bytes(range(256)) * 4  # 1024 bytes, every offset distinguishable


@pytest.fixture()
def media_storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(tmp_path / "media", signing_key="test-signing-key")


async def put_sample(storage: LocalObjectStorage, key: str, data: bytes = SAMPLE_MEDIA) -> bytes:
    await storage.put_object(key, data, content_type="video/mp4")
    return data


class BrokenStorage:
    """Raises `StorageError` from every operation."""

    async def stat(self, key: str) -> Optional[ObjectStat]:
        raise StorageError("backend unreachable")

    def iter_range(self, key: str, start: int, end: int, *, chunk_size: int):
        raise StorageError("backend unreachable")

    async def signed_url(self, key: str, *, ttl_seconds: int) -> str:
        raise StorageError("backend unreachable")

    async def put_object(self, key: str, data: bytes, *, content_type: str) -> None:
        raise StorageError("backend unreachable")

    async def delete_object(self, key: str) -> None:
        raise StorageError("backend unreachable")


__all__ = ["SAMPLE_MEDIA", "media_storage", "put_sample", "BrokenStorage"]
