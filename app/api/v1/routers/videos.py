# app/api/v1/routers/videos.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎞️ Clipvault · Videos                                                    ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /videos                           → Videos visible to caller   ║
# ║  - POST   /videos                           → Register uploaded video    ║
# ║  - GET    /videos/workspace/{workspace_id}  → Workspace/folder listing   ║
# ║  - GET    /videos/{id}                      → Metadata (evaluator read)  ║
# ║  - PATCH  /videos/{id}                      → Edit / settings / folder   ║
# ║  - DELETE /videos/{id}                      → Delete row + stored media  ║
# ║  - POST   /videos/{id}/associate-group      → Attach to a client group   ║
# ║  - GET    /videos/{id}/stream               → Range stream or signed ref ║
# ║  - POST   /videos/{id}/analytics/view       → Session snapshot (202)     ║
# ║  - POST   /videos/{id}/analytics/quarters   → Quarter reached (202)      ║
# ║  - POST   /videos/{id}/analytics/cta-click  → CTA clicked (202)          ║
# ║  - GET    /videos/{id}/analytics            → Aggregate                  ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Security & Ops                                                           ║
# ║  - Every route consults the access evaluator before touching data.       ║
# ║  - Anonymous callers may read/stream/report on public videos only.       ║
# ║  - Analytics ingest is rate limited per user/IP.                         ║
# ╚══════════════════════════════════════════════════════════════════════════╝

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.delivery import deliver_video
from app.api.http_utils import hashed_client_ip
from app.core.config import settings
from app.core.limiter import rate_limit
from app.db.session import get_async_db, get_session_factory
from app.dependencies.delivery import get_delivery_resolver
from app.dependencies.identity import get_identity, get_optional_identity
from app.domain.identity import IdentityContext
from app.domain.resources import VideoResource, WorkspaceResource
from app.schemas.analytics import CtaClickIn, QuarterEventIn, VideoAnalyticsOut, ViewEventIn
from app.schemas.enums import Action
from app.schemas.video import VideoCreate, VideoGroupAssociation, VideoOut, VideoUpdate
from app.services import videos as video_service
from app.services.access import ensure_allowed
from app.services.analytics import SessionAnalyticsAggregator
from app.services.delivery import MediaDeliveryResolver
from app.services.storage import ObjectStorage, get_storage
from app.services.workspaces import get_workspace

router = APIRouter(
    prefix="/videos",
    tags=["Videos"],
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        429: {"description": "Too Many Requests"},
    },
)

log = logging.getLogger(__name__)

_SETTINGS_FIELDS = {"access", "allowed_users", "settings"}


async def _readable_video(db: AsyncSession, identity: Optional[IdentityContext], video_id: UUID):
    video = await video_service.get_video(db, video_id)
    ensure_allowed(identity, VideoResource.from_model(video), Action.READ)
    return video


def _viewer_info(request: Request, extra: Optional[dict]) -> dict:
    info = dict(extra or {})
    info["ip_hash"] = hashed_client_ip(request)
    info.setdefault("user_agent", (request.headers.get("user-agent") or "")[:512])
    return info


# ─────────────────────────────────────────────────────────────────────────────
# 📚 Listing & CRUD
# ─────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=List[VideoOut], summary="Videos visible to the caller")
async def list_videos(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await video_service.list_videos_for(db, identity)


@router.post("", response_model=VideoOut, status_code=status.HTTP_201_CREATED, summary="Register an uploaded video")
async def create_video(
    payload: VideoCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Record metadata for media already present at `storage_key`.

    Steps
    -----
    1) Placing the video in a workspace requires ``write`` there.
    2) Persist with access defaulting to the workspace's default.
    """
    if payload.workspace_id is not None:
        ws = await get_workspace(db, payload.workspace_id)
        ensure_allowed(identity, WorkspaceResource.from_model(ws), Action.WRITE)

    return await video_service.register_video(
        db,
        identity,
        title=payload.title,
        description=payload.description,
        storage_key=payload.storage_key,
        thumbnail_key=payload.thumbnail_key,
        file_size=payload.file_size,
        mime_type=payload.mime_type,
        duration=payload.duration,
        workspace_id=payload.workspace_id,
        folder_id=payload.folder_id,
        access=payload.access,
        allowed_users=[a.model_dump() for a in payload.allowed_users],
        settings=payload.settings.model_dump(exclude_none=True) if payload.settings else None,
    )


@router.get("/workspace/{workspace_id}", response_model=List[VideoOut], summary="Videos in a workspace folder")
async def list_workspace_videos(
    workspace_id: UUID,
    folder_id: Optional[UUID] = Query(None, description="Omit for the workspace root"),
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await get_workspace(db, workspace_id)
    ensure_allowed(identity, WorkspaceResource.from_model(ws), Action.READ)
    return await video_service.list_workspace_videos(db, workspace_id, folder_id)


@router.get("/{video_id}", response_model=VideoOut, summary="Video metadata")
async def get_video(
    video_id: UUID,
    identity: Optional[IdentityContext] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await _readable_video(db, identity, video_id)


@router.patch("/{video_id}", response_model=VideoOut, summary="Update a video")
async def update_video(
    video_id: UUID,
    payload: VideoUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    """Content fields need ``write``; access, allow list and player settings need ``change-settings``."""
    video = await video_service.get_video(db, video_id)
    sent = payload.model_fields_set
    action = Action.CHANGE_SETTINGS if sent & _SETTINGS_FIELDS else Action.WRITE
    ensure_allowed(identity, VideoResource.from_model(video), action)

    kwargs = {}
    if "folder_id" in sent:
        kwargs["folder_id"] = payload.folder_id
    return await video_service.update_video(
        db,
        video,
        title=payload.title,
        description=payload.description,
        access=payload.access,
        status=payload.status,
        allowed_users=[a.model_dump() for a in payload.allowed_users] if payload.allowed_users is not None else None,
        settings=payload.settings.model_dump(exclude_none=True) if payload.settings else None,
        **kwargs,
    )


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a video")
async def delete_video(
    video_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
    storage: ObjectStorage = Depends(get_storage),
):
    video = await video_service.get_video(db, video_id)
    ensure_allowed(identity, VideoResource.from_model(video), Action.DELETE)
    await video_service.delete_video(db, storage, video)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{video_id}/associate-group", response_model=VideoOut, summary="Attach a video to a client group")
async def associate_group(
    video_id: UUID,
    payload: VideoGroupAssociation,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    video = await video_service.get_video(db, video_id)
    return await video_service.associate_group(db, identity, video, payload.client_group_id)


# ─────────────────────────────────────────────────────────────────────────────
# 📼 Delivery
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/{video_id}/stream", summary="Stream (Range-aware) or obtain a signed reference")
async def stream_video(
    video_id: UUID,
    background_tasks: BackgroundTasks,
    range_header: Optional[str] = Header(None, alias="Range"),
    redirect: bool = Query(False, description="Signed mode: 307 to the URL instead of JSON"),
    identity: Optional[IdentityContext] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_db),
    resolver: MediaDeliveryResolver = Depends(get_delivery_resolver),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    video = await _readable_video(db, identity, video_id)
    return await deliver_video(
        resolver,
        video,
        background_tasks=background_tasks,
        session_factory=session_factory,
        range_header=range_header,
        redirect=redirect,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 📊 Analytics
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{video_id}/analytics/view", status_code=status.HTTP_202_ACCEPTED, summary="Record a session snapshot")
@rate_limit(settings.ANALYTICS_RATE_LIMIT)
async def record_view(
    request: Request,
    response: Response,
    video_id: UUID,
    payload: ViewEventIn,
    identity: Optional[IdentityContext] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_db),
):
    await _readable_video(db, identity, video_id)
    await SessionAnalyticsAggregator(db).record_view_event(
        video_id,
        payload.session_id,
        user_id=identity.id if identity else None,
        start_time=payload.start_time,
        end_time=payload.end_time,
        watch_time=payload.watch_time,
        completed_quarters=payload.completed_quarters,
        playback_positions=payload.playback_positions,
        viewer_info=_viewer_info(request, payload.viewer_info),
    )
    return {"status": "recorded"}


@router.post("/{video_id}/analytics/quarters", status_code=status.HTTP_202_ACCEPTED, summary="Record a reached quarter")
@rate_limit(settings.ANALYTICS_RATE_LIMIT)
async def record_quarter(
    request: Request,
    response: Response,
    video_id: UUID,
    payload: QuarterEventIn,
    identity: Optional[IdentityContext] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_db),
):
    await _readable_video(db, identity, video_id)
    await SessionAnalyticsAggregator(db).record_quarter_event(video_id, payload.session_id, payload.quarter, payload.position)
    return {"status": "recorded"}


@router.post("/{video_id}/analytics/cta-click", status_code=status.HTTP_202_ACCEPTED, summary="Record a call-to-action click")
@rate_limit(settings.ANALYTICS_RATE_LIMIT)
async def record_cta_click(
    request: Request,
    response: Response,
    video_id: UUID,
    payload: CtaClickIn,
    identity: Optional[IdentityContext] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_async_db),
):
    await _readable_video(db, identity, video_id)
    await SessionAnalyticsAggregator(db).record_cta_click(video_id, payload.session_id)
    return {"status": "recorded"}


@router.get("/{video_id}/analytics", response_model=VideoAnalyticsOut, summary="Per-video aggregate")
async def get_analytics(
    video_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    """Uploader, workspace admins and the client group's admin only."""
    video = await video_service.get_video(db, video_id)
    ensure_allowed(identity, VideoResource.from_model(video), Action.MANAGE)
    aggregate = await SessionAnalyticsAggregator(db).compute_aggregate(video_id)
    return aggregate.as_dict()
