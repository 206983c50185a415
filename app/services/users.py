from __future__ import annotations

"""
👥 User management (client-group scoped)

- super-admin: every account except other super-admins
- client-admin: plain users of their own client group

Deleting an account deletes the videos it uploaded (rows first, stored
objects best-effort afterwards). Accounts that still own a workspace are
refused until ownership is resolved.
"""

import logging
from dataclasses import dataclass, field
from typing import List
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, InvalidStateError, NotFoundError
from app.db.models.campaign import Campaign
from app.db.models.client_group import ClientGroup
from app.db.models.user import User
from app.db.models.video import Video
from app.db.models.workspace import Workspace
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.domain.resources import UserAccountResource
from app.schemas.enums import Action, DenyReason, GlobalRole, UserStatus
from app.services.access import ensure_allowed
from app.services.storage import ObjectStorage
from app.services.videos import remove_stored_objects, stored_keys

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User")
    return user


async def list_manageable_users(db: AsyncSession, identity: IdentityContext) -> List[User]:
    stmt = select(User).order_by(User.username)
    if identity.is_super_admin:
        stmt = stmt.where(User.role != GlobalRole.SUPER_ADMIN)
    elif identity.is_client_admin and identity.client_group_id is not None:
        stmt = stmt.where(User.client_group_id == identity.client_group_id, User.role == GlobalRole.USER)
    else:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    rows = await db.execute(stmt)
    return list(rows.scalars().all())


def _ensure_manageable(identity: IdentityContext, user: User) -> None:
    """Nobody manages themselves or a super-admin here; the rest is the evaluator's call."""
    if user.id == identity.id:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    if GlobalRole(user.role) == GlobalRole.SUPER_ADMIN:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    ensure_allowed(identity, UserAccountResource.from_model(user), Action.MANAGE)


async def change_status(db: AsyncSession, identity: IdentityContext, user_id: UUID, status: UserStatus) -> User:
    """Suspend, ban or reactivate an account the caller manages."""
    user = await get_user(db, user_id)
    _ensure_manageable(identity, user)
    async with unit_of_work(db):
        user.status = status
    logger.info("user status changed user=%s status=%s by=%s", user.id, status.value, identity.id)
    return user


async def delete_user(db: AsyncSession, storage: ObjectStorage, identity: IdentityContext, user_id: UUID) -> List[str]:
    """Delete an account the caller manages. Returns stored keys left behind."""
    user = await get_user(db, user_id)
    _ensure_manageable(identity, user)
    orphaned = await _remove_account(db, storage, user)
    logger.info("user deleted user=%s by=%s", user_id, identity.id)
    return orphaned


async def delete_own_account(db: AsyncSession, storage: ObjectStorage, identity: IdentityContext) -> List[str]:
    """Close the caller's own account. Super-admin accounts cannot be closed this way."""
    user = await get_user(db, identity.id)
    if GlobalRole(user.role) == GlobalRole.SUPER_ADMIN:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    orphaned = await _remove_account(db, storage, user)
    logger.info("account closed user=%s", identity.id)
    return orphaned


async def _remove_account(db: AsyncSession, storage: ObjectStorage, user: User) -> List[str]:
    """
    Steps
    -----
    1) Refuse while the account owns a workspace.
    2) Collect the stored keys of the account's videos.
    3) Delete videos and account in one transaction; memberships and
       campaign assignments go with the account.
    4) Remove the stored objects best-effort.
    """
    user_id = user.id
    owned = await db.scalar(select(func.count(Workspace.id)).where(Workspace.owner_id == user_id))
    if owned:
        raise InvalidStateError("owns-workspace", message="Transfer or delete owned workspaces first")

    rows = await db.execute(select(Video.storage_key, Video.thumbnail_key).where(Video.owner_id == user_id))
    keys = [key for storage_key, thumb in rows.all() for key in stored_keys(storage_key, thumb)]

    async with unit_of_work(db):
        await db.execute(delete(Video).where(Video.owner_id == user_id))
        await db.delete(user)
    return await remove_stored_objects(storage, keys)


# ─────────────────────────────────────────────────────────────
# Platform statistics
# ─────────────────────────────────────────────────────────────
@dataclass
class PlatformStats:
    total_users: int
    active_users: int
    total_videos: int
    total_views: int
    total_workspaces: int
    total_client_groups: int
    total_campaigns: int
    recent_users: List[User] = field(default_factory=list)
    recent_videos: List[Video] = field(default_factory=list)


async def platform_stats(db: AsyncSession, identity: IdentityContext) -> PlatformStats:
    """Headline counts plus the newest accounts and videos (super-admin only)."""
    if not identity.is_super_admin:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)

    async def _count(column, *where) -> int:
        stmt = select(func.count(column))
        if where:
            stmt = stmt.where(*where)
        return int(await db.scalar(stmt) or 0)

    recent_users = await db.execute(select(User).order_by(User.created_at.desc()).limit(RECENT_LIMIT))
    recent_videos = await db.execute(select(Video).order_by(Video.created_at.desc()).limit(RECENT_LIMIT))
    return PlatformStats(
        total_users=await _count(User.id),
        active_users=await _count(User.id, User.status == UserStatus.ACTIVE),
        total_videos=await _count(Video.id),
        total_views=int(await db.scalar(select(func.coalesce(func.sum(Video.views_count), 0))) or 0),
        total_workspaces=await _count(Workspace.id),
        total_client_groups=await _count(ClientGroup.id),
        total_campaigns=await _count(Campaign.id),
        recent_users=list(recent_users.scalars().all()),
        recent_videos=list(recent_videos.scalars().all()),
    )


__all__ = [
    "get_user",
    "list_manageable_users",
    "change_status",
    "delete_user",
    "delete_own_account",
    "PlatformStats",
    "platform_stats",
]
