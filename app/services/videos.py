from __future__ import annotations

"""
🎞️ Video service: registration, listing, updates and deletion.

Bytes are uploaded to object storage out of band; `register_video` records
metadata for an existing storage key. Every function assumes the caller
already passed the access evaluator for the relevant action.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, InvalidStateError, NotFoundError
from app.core.metrics import inc_storage_cleanup_failure
from app.db.models.client_group import ClientGroup
from app.db.models.folder import Folder
from app.db.models.video import DEFAULT_VIDEO_SETTINGS, Video, VideoAllowedUser
from app.db.models.workspace import Workspace
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.schemas.enums import DenyReason, VideoAccess, VideoStatus
from app.services.storage import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

_UNSET = object()


async def get_video(db: AsyncSession, video_id: UUID) -> Video:
    video = await db.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video")
    return video


def merge_video_settings(current: Optional[Dict[str, Any]], patch: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay `patch` on `current` (and defaults); ``call_to_action`` merges one level deep."""
    merged: Dict[str, Any] = dict(DEFAULT_VIDEO_SETTINGS)
    merged["call_to_action"] = dict(DEFAULT_VIDEO_SETTINGS["call_to_action"])
    for src in (current or {}, patch or {}):
        for k, v in src.items():
            if k == "call_to_action" and isinstance(v, dict):
                merged["call_to_action"].update({ck: cv for ck, cv in v.items() if cv is not None})
            elif k in DEFAULT_VIDEO_SETTINGS and v is not None:
                merged[k] = v
    return merged


def _grants(entries: Iterable[Dict[str, Any]]) -> List[VideoAllowedUser]:
    grants: List[VideoAllowedUser] = []
    for e in entries:
        email = (e.get("email") or "").strip().lower() or None
        user_id = e.get("user_id")
        if email is None and user_id is None:
            continue
        grants.append(VideoAllowedUser(user_id=user_id, email=email, expires_at=e.get("expires_at")))
    return grants


async def _validate_placement(db: AsyncSession, workspace_id: Optional[UUID], folder_id: Optional[UUID]) -> Optional[Workspace]:
    ws: Optional[Workspace] = None
    if workspace_id is not None:
        ws = await db.get(Workspace, workspace_id)
        if ws is None:
            raise NotFoundError("Workspace")
    if folder_id is not None:
        folder = await db.get(Folder, folder_id)
        if folder is None or workspace_id is None or folder.workspace_id != workspace_id:
            raise InvalidStateError("invalid-folder", message="Folder does not belong to the video's workspace")
    return ws


async def register_video(
    db: AsyncSession,
    identity: IdentityContext,
    *,
    title: str,
    storage_key: str,
    file_size: int,
    mime_type: str = "video/mp4",
    description: Optional[str] = None,
    duration: Optional[float] = None,
    thumbnail_key: Optional[str] = None,
    workspace_id: Optional[UUID] = None,
    folder_id: Optional[UUID] = None,
    access: Optional[VideoAccess] = None,
    allowed_users: Iterable[Dict[str, Any]] = (),
    settings: Optional[Dict[str, Any]] = None,
) -> Video:
    """
    Record a video whose bytes already live at `storage_key`.

    The access mode defaults to the workspace's ``default_video_access``
    when placed in a workspace, otherwise ``private``.
    """
    ws = await _validate_placement(db, workspace_id, folder_id)
    if access is None:
        default = (ws.settings or {}).get("default_video_access") if ws is not None else None
        access = VideoAccess(default) if default else VideoAccess.PRIVATE
    if access == VideoAccess.WORKSPACE and workspace_id is None:
        raise InvalidStateError("workspace-access-without-workspace", message="Workspace access requires a workspace")

    video = Video(
        title=title,
        description=description,
        storage_key=storage_key,
        thumbnail_key=thumbnail_key,
        file_size=file_size,
        mime_type=mime_type,
        duration=duration,
        owner_id=identity.id,
        client_group_id=identity.client_group_id,
        workspace_id=workspace_id,
        folder_id=folder_id,
        status=VideoStatus.READY,
        access=access,
        settings=merge_video_settings(None, settings),
        views_count=0,
        allowed_users=_grants(allowed_users),
    )
    async with unit_of_work(db):
        db.add(video)
    logger.info("video registered id=%s owner=%s workspace=%s", video.id, identity.id, workspace_id)
    return video


async def list_videos_for(db: AsyncSession, identity: IdentityContext) -> List[Video]:
    """Super-admin: all; client-admin: own + client group; user: own."""
    stmt = select(Video).order_by(Video.created_at.desc())
    if identity.is_client_admin and identity.client_group_id is not None:
        stmt = stmt.where(or_(Video.owner_id == identity.id, Video.client_group_id == identity.client_group_id))
    elif not identity.is_super_admin:
        stmt = stmt.where(Video.owner_id == identity.id)
    rows = await db.execute(stmt)
    return list(rows.scalars().all())


async def list_workspace_videos(db: AsyncSession, workspace_id: UUID, folder_id: Optional[UUID] = None) -> List[Video]:
    """Videos directly in `folder_id`, or at the workspace root when no folder is given."""
    stmt = select(Video).where(Video.workspace_id == workspace_id)
    stmt = stmt.where(Video.folder_id == folder_id) if folder_id is not None else stmt.where(Video.folder_id.is_(None))
    rows = await db.execute(stmt.order_by(Video.created_at.desc()))
    return list(rows.scalars().all())


async def update_video(
    db: AsyncSession,
    video: Video,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    access: Optional[VideoAccess] = None,
    folder_id: Any = _UNSET,
    allowed_users: Optional[Iterable[Dict[str, Any]]] = None,
    settings: Optional[Dict[str, Any]] = None,
    status: Optional[VideoStatus] = None,
) -> Video:
    if folder_id is not _UNSET and folder_id is not None:
        await _validate_placement(db, video.workspace_id, folder_id)
    if access == VideoAccess.WORKSPACE and video.workspace_id is None:
        raise InvalidStateError("workspace-access-without-workspace", message="Workspace access requires a workspace")

    async with unit_of_work(db):
        if title is not None:
            video.title = title
        if description is not None:
            video.description = description
        if access is not None:
            video.access = access
        if status is not None:
            video.status = status
        if folder_id is not _UNSET:
            video.folder_id = folder_id
        if settings is not None:
            video.settings = merge_video_settings(video.settings, settings)
        if allowed_users is not None:
            video.allowed_users = _grants(allowed_users)
    return video


async def associate_group(db: AsyncSession, identity: IdentityContext, video: Video, client_group_id: UUID) -> Video:
    """
    Attach `video` to a client group.

    Steps
    -----
    1) Only admins associate; a client-admin only their own videos, and only
       with their own group.
    2) The group must exist.
    3) Save.
    """
    if not (identity.is_super_admin or identity.is_client_admin):
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    if not identity.is_super_admin:
        if video.owner_id != identity.id:
            raise AccessDeniedError(DenyReason.NOT_OWNER.value)
        if client_group_id != identity.client_group_id:
            raise AccessDeniedError(DenyReason.CLIENT_GROUP_MISMATCH.value)
    if await db.get(ClientGroup, client_group_id) is None:
        raise NotFoundError("Client group")

    async with unit_of_work(db):
        video.client_group_id = client_group_id
    logger.info("video associated id=%s client_group=%s by=%s", video.id, client_group_id, identity.id)
    return video


async def delete_video(db: AsyncSession, storage: ObjectStorage, video: Video) -> List[str]:
    """
    Delete the row, then remove its stored objects best-effort.

    Share links pointing at the video are left in place and resolve to 404.
    Objects that cannot be removed are logged and counted; the delete still
    succeeds. Returns the keys left behind in storage.
    """
    video_id = video.id
    keys = stored_keys(video.storage_key, video.thumbnail_key)
    async with unit_of_work(db):
        await db.delete(video)
    logger.info("video deleted id=%s", video_id)
    return await remove_stored_objects(storage, keys)


def stored_keys(*keys: Optional[str]) -> List[str]:
    return [k for k in keys if k]


async def remove_stored_objects(storage: ObjectStorage, keys: Iterable[str]) -> List[str]:
    """Delete `keys` from storage, returning the ones that could not be removed."""
    orphaned: List[str] = []
    for key in keys:
        try:
            await storage.delete_object(key)
        except StorageError as e:
            inc_storage_cleanup_failure()
            logger.warning("stored object left behind key=%s err=%s", key, e)
            orphaned.append(key)
    return orphaned


__all__ = [
    "get_video",
    "merge_video_settings",
    "register_video",
    "list_videos_for",
    "list_workspace_videos",
    "update_video",
    "associate_group",
    "delete_video",
    "stored_keys",
    "remove_stored_objects",
]
