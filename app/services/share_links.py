from __future__ import annotations

"""
🔗 Share links
==============

Tokenized external access to a single video.

Resolution order
----------------
1) Unknown token                        → 404
2) Video gone (links are weak refs)     → 404
3) Expired (``expiry_date <= now``)     → 403, whether or not purged yet
4) Email required but not supplied      → 403 with ``requireEmail: true``
5) Otherwise ``access_count += 1`` (single UPDATE) and the video is returned

Expired rows are removed by `purge_expired`, a maintenance call that
resolution never depends on.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, NotFoundError
from app.db.base_class import ensure_utc, utcnow
from app.db.models.share_link import ShareLink
from app.db.models.video import Video
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.domain.resources import VideoResource
from app.schemas.enums import Action
from app.services.access import ensure_allowed

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24


def new_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def is_expired(link: ShareLink, now: Optional[datetime] = None) -> bool:
    if link.expiry_date is None:
        return False
    return ensure_utc(link.expiry_date) <= (now or utcnow())


@dataclass
class ResolvedShare:
    link: ShareLink
    video: Video


async def create_share_link(
    db: AsyncSession,
    identity: IdentityContext,
    video: Video,
    *,
    expires_at: Optional[datetime] = None,
    require_email: bool = False,
) -> ShareLink:
    """Issue a link; the issuer needs ``write`` on the video."""
    ensure_allowed(identity, VideoResource.from_model(video), Action.WRITE)
    link = ShareLink(
        video_id=video.id,
        issued_by=identity.id,
        token=new_token(),
        expiry_date=expires_at,
        require_email=require_email,
        access_count=0,
    )
    async with unit_of_work(db):
        db.add(link)
    logger.info("share link issued video=%s by=%s expires=%s", video.id, identity.id, expires_at)
    return link


async def _lookup(db: AsyncSession, token: str) -> ShareLink:
    link = (await db.execute(select(ShareLink).where(ShareLink.token == token))).scalar_one_or_none()
    if link is None:
        raise NotFoundError("Share link")
    return link


async def resolve_share_link(
    db: AsyncSession,
    token: str,
    *,
    email: Optional[str] = None,
    count_access: bool = True,
    now: Optional[datetime] = None,
) -> ResolvedShare:
    """Validate `token` and return the link with its video."""
    link = await _lookup(db, token)
    video = await db.get(Video, link.video_id)
    if video is None:
        logger.info("share link orphaned token_id=%s video=%s", link.id, link.video_id)
        raise NotFoundError("Video")
    if is_expired(link, now):
        raise AccessDeniedError("link-expired")
    if link.require_email and not (email or "").strip():
        raise AccessDeniedError("email-required", extra={"requireEmail": True})

    if count_access:
        async with unit_of_work(db):
            await db.execute(
                update(ShareLink)
                .where(ShareLink.id == link.id)
                .values(access_count=ShareLink.access_count + 1)
                .execution_options(synchronize_session=False)
            )
        await db.refresh(link)
    return ResolvedShare(link=link, video=video)


async def purge_expired(db: AsyncSession, *, now: Optional[datetime] = None) -> int:
    """Delete links whose expiry has passed; returns the number removed."""
    cutoff = now or utcnow()
    async with unit_of_work(db):
        res = await db.execute(
            delete(ShareLink)
            .where(ShareLink.expiry_date.is_not(None), ShareLink.expiry_date <= cutoff)
            .execution_options(synchronize_session=False)
        )
    removed = int(res.rowcount or 0)
    if removed:
        logger.info("purged %d expired share links", removed)
    return removed


__all__ = [
    "new_token",
    "is_expired",
    "ResolvedShare",
    "create_share_link",
    "resolve_share_link",
    "purge_expired",
]
