from __future__ import annotations

"""
Clipvault · Delivery responses
==============================

Turns a `MediaDeliveryResolver` result into an HTTP response and schedules
the best-effort view increment. Shared by the authenticated stream route and
the share-link stream route; both authorize before calling in.

View counting
-------------
One increment per playback: a full (200) response, or a partial response
that starts at byte 0. Follow-up range requests of the same playback are not
counted. The increment runs as a background task on its own session, so a
slow or failing counter never delays or breaks the response.
"""

from typing import Optional

from fastapi import BackgroundTasks
from fastapi.responses import RedirectResponse, StreamingResponse
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.responses import Response

from app.api.http_utils import json_no_store
from app.db.models.video import Video
from app.services.delivery import MediaDeliveryResolver, SignedReference, count_view_detached


def _starts_playback(status_code: int, headers: dict) -> bool:
    return status_code == 200 or headers.get("Content-Range", "").startswith("bytes 0-")


async def deliver_video(
    resolver: MediaDeliveryResolver,
    video: Video,
    *,
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker,
    range_header: Optional[str] = None,
    redirect: bool = False,
) -> Response:
    result = await resolver.resolve(video, range_header)

    if isinstance(result, SignedReference):
        background_tasks.add_task(count_view_detached, session_factory, video.id)
        if redirect:
            return RedirectResponse(result.url, status_code=307, headers=result.headers)
        return json_no_store({"url": result.url, "expires_in": result.expires_in})

    if _starts_playback(result.status_code, result.headers):
        background_tasks.add_task(count_view_detached, session_factory, video.id)
    return StreamingResponse(
        result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type=result.media_type,
    )


__all__ = ["deliver_video"]
