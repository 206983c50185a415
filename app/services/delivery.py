from __future__ import annotations

"""
📼 MediaDeliveryResolver
========================

Turns an authorized video into either a byte stream (``stream`` mode,
HTTP range semantics) or a time-bound signed reference (``signed`` mode).

Range handling (single range only)
----------------------------------
- ``bytes=S-E`` → S..min(E, size-1)
- ``bytes=S-``  → S..size-1
- ``bytes=-N``  → last N bytes
- no header     → whole object (200)
- S ≥ size, E < S, N = 0 or anything unparsable → 416 with
  ``Content-Range: bytes */size``

A missing backing object is a 404, never an empty 200. Signed references are
never persisted and are served with ``Cache-Control: no-store``.

Authorization happens before the resolver is called; the resolver itself
never consults identity.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import NotFoundError, RangeNotSatisfiableError, UpstreamFailureError
from app.core.metrics import inc_delivery, inc_view_count_failure
from app.db.models.video import Video
from app.schemas.enums import DeliveryMode
from app.services.storage import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


def parse_range(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """Return inclusive ``(start, end)`` for a Range header, None for no header.

    Raises `RangeNotSatisfiableError` for anything that cannot be served.
    """
    if header is None or not header.strip():
        return None
    m = _RANGE_RE.match(header)
    if not m:
        raise RangeNotSatisfiableError(size)
    raw_start, raw_end = m.group(1), m.group(2)

    if raw_start == "":
        if raw_end == "":
            raise RangeNotSatisfiableError(size)
        suffix = int(raw_end)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return max(0, size - suffix), size - 1

    start = int(raw_start)
    if start >= size:
        raise RangeNotSatisfiableError(size)
    end = size - 1 if raw_end == "" else min(int(raw_end), size - 1)
    if end < start:
        raise RangeNotSatisfiableError(size)
    return start, end


@dataclass
class StreamPlan:
    status_code: int
    headers: Dict[str, str]
    body: Iterator[bytes]
    media_type: str


@dataclass(frozen=True)
class SignedReference:
    url: str
    expires_in: int
    headers: Dict[str, str] = field(default_factory=lambda: {"Cache-Control": "no-store", "Pragma": "no-cache"})


class MediaDeliveryResolver:
    """Resolve a video to bytes or a signed reference."""

    def __init__(self, storage: ObjectStorage, *, mode: DeliveryMode, signed_ttl_seconds: int = 3600, chunk_size: int = 64 * 1024) -> None:
        self.storage = storage
        self.mode = DeliveryMode(mode)
        self.signed_ttl_seconds = signed_ttl_seconds
        self.chunk_size = chunk_size

    async def resolve(self, video: Video, range_header: Optional[str] = None):
        if self.mode == DeliveryMode.SIGNED:
            return await self.signed(video)
        return await self.stream(video, range_header)

    async def stream(self, video: Video, range_header: Optional[str]) -> StreamPlan:
        """
        Plan a (possibly partial) streaming response.

        Steps
        -----
        1) Stat the backing object; missing → 404.
        2) Parse the Range header against the real size.
        3) Build headers and a lazily-opened chunk iterator.
        """
        try:
            stat = await self.storage.stat(video.storage_key)
        except StorageError as e:
            inc_delivery("stream", "upstream_error")
            raise UpstreamFailureError() from e
        if stat is None:
            inc_delivery("stream", "missing")
            logger.warning("backing object missing video=%s key=%s", video.id, video.storage_key)
            raise NotFoundError("Media")

        size = stat.size
        media_type = video.mime_type or stat.content_type or "application/octet-stream"
        try:
            rng = parse_range(range_header, size)
        except RangeNotSatisfiableError:
            inc_delivery("stream", "range_not_satisfiable")
            raise

        headers = {"Accept-Ranges": "bytes", "Content-Type": media_type}
        if rng is None:
            headers["Content-Length"] = str(size)
            body = self.storage.iter_range(video.storage_key, 0, size - 1, chunk_size=self.chunk_size) if size else iter(())
            inc_delivery("stream", "full")
            return StreamPlan(200, headers, body, media_type)

        start, end = rng
        headers["Content-Range"] = f"bytes {start}-{end}/{size}"
        headers["Content-Length"] = str(end - start + 1)
        inc_delivery("stream", "partial")
        return StreamPlan(206, headers, self.storage.iter_range(video.storage_key, start, end, chunk_size=self.chunk_size), media_type)

    async def signed(self, video: Video) -> SignedReference:
        stat = None
        try:
            stat = await self.storage.stat(video.storage_key)
            if stat is not None:
                url = await self.storage.signed_url(video.storage_key, ttl_seconds=self.signed_ttl_seconds)
        except StorageError as e:
            inc_delivery("signed", "upstream_error")
            raise UpstreamFailureError() from e
        if stat is None:
            inc_delivery("signed", "missing")
            raise NotFoundError("Media")
        inc_delivery("signed", "ok")
        return SignedReference(url=url, expires_in=self.signed_ttl_seconds)


async def count_view(db: AsyncSession, video_id: UUID) -> bool:
    """
    Best-effort ``views_count = views_count + 1``.

    Never raises for database errors: a failed increment is logged and
    counted, and the delivery it belongs to still succeeds.
    """
    try:
        await db.execute(
            update(Video)
            .where(Video.id == video_id)
            .values(views_count=Video.views_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return True
    except SQLAlchemyError:
        await db.rollback()
        inc_view_count_failure()
        logger.warning("view count increment failed video=%s", video_id, exc_info=True)
        return False


async def count_view_detached(session_factory: async_sessionmaker, video_id: UUID) -> bool:
    """Run `count_view` on a session of its own, after the response is sent."""
    try:
        async with session_factory() as db:
            return await count_view(db, video_id)
    except SQLAlchemyError:
        inc_view_count_failure()
        logger.warning("view count session unavailable video=%s", video_id, exc_info=True)
        return False


__all__ = [
    "parse_range",
    "StreamPlan",
    "SignedReference",
    "MediaDeliveryResolver",
    "count_view",
    "count_view_detached",
]
