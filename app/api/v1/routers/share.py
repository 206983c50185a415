# app/api/v1/routers/share.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🔗 Clipvault · Share links                                               ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - POST /share                 → Issue a link (write on the video)       ║
# ║  - GET  /share/{token}?email=  → Public metadata, counts the access      ║
# ║  - GET  /share/{token}/stream  → Deliver media through the link          ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ A valid link substitutes for identity evaluation. Expired links are      ║
# ║ refused whether or not the purge job has run.                            ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.delivery import deliver_video
from app.api.http_utils import json_no_store
from app.core.config import settings
from app.core.limiter import rate_limit
from app.db.session import get_async_db, get_session_factory
from app.dependencies.delivery import get_delivery_resolver
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.schemas.share import ShareLinkCreate, ShareLinkOut, SharedVideoOut
from app.services.delivery import MediaDeliveryResolver
from app.services.share_links import create_share_link, resolve_share_link
from app.services.videos import get_video

router = APIRouter(
    prefix="/share",
    tags=["Share links"],
    responses={
        403: {"description": "Expired link or email required"},
        404: {"description": "Unknown link or video gone"},
    },
)


@router.post("", response_model=ShareLinkOut, status_code=status.HTTP_201_CREATED, summary="Issue a share link")
async def issue_share_link(
    payload: ShareLinkCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    video = await get_video(db, payload.video_id)
    return await create_share_link(
        db,
        identity,
        video,
        expires_at=payload.expiry_date,
        require_email=payload.require_email,
    )


@router.get("/{token}", summary="Resolve a share link")
@rate_limit(settings.SHARE_RATE_LIMIT)
async def open_share_link(
    request: Request,
    response: Response,
    token: str,
    email: Optional[str] = Query(None, max_length=320),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Resolve `token` into the shared video's public metadata.

    Steps
    -----
    1) Unknown token or deleted video → 404.
    2) Expired → 403 ``link-expired``.
    3) Email required but absent → 403 carrying ``requireEmail: true``.
    4) Otherwise count the access and return metadata (``no-store``).
    """
    shared = await resolve_share_link(db, token, email=email)
    body = SharedVideoOut.model_validate(shared.video).model_dump(mode="json")
    body["require_email"] = shared.link.require_email
    body["expiry_date"] = shared.link.expiry_date
    return json_no_store(body)


@router.get("/{token}/stream", summary="Stream a shared video")
async def stream_shared_video(
    token: str,
    background_tasks: BackgroundTasks,
    email: Optional[str] = Query(None, max_length=320),
    range_header: Optional[str] = Header(None, alias="Range"),
    redirect: bool = Query(False),
    db: AsyncSession = Depends(get_async_db),
    resolver: MediaDeliveryResolver = Depends(get_delivery_resolver),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    shared = await resolve_share_link(db, token, email=email, count_access=False)
    return await deliver_video(
        resolver,
        shared.video,
        background_tasks=background_tasks,
        session_factory=session_factory,
        range_header=range_header,
        redirect=redirect,
    )
