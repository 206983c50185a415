from __future__ import annotations

"""
🗂️ Workspace membership service
===============================

Creation, settings, deletion and member-list mutations for workspaces.

Owner invariant
---------------
Exactly one member holds the ``owner`` role and that member is
`Workspace.owner_id`. The role is never granted through this service, and
every member-list write re-checks the invariant inside its transaction
before commit; a violation raises `InvalidStateError("owner-invariant")`
and rolls the write back.

Authorization is the caller's job (`app.services.access.ensure_allowed`),
including the owner-target protection for member mutations.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from app.db.models.folder import Folder
from app.db.models.user import User
from app.db.models.video import Video
from app.db.models.workspace import DEFAULT_WORKSPACE_SETTINGS, Workspace, WorkspaceMember
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.schemas.enums import WorkspaceRole

logger = logging.getLogger(__name__)


async def get_workspace(db: AsyncSession, workspace_id: UUID) -> Workspace:
    ws = await db.get(Workspace, workspace_id)
    if ws is None:
        raise NotFoundError("Workspace")
    return ws


async def list_members(db: AsyncSession, workspace_id: UUID) -> List[WorkspaceMember]:
    rows = await db.execute(
        select(WorkspaceMember)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.joined_at)
    )
    return list(rows.scalars().all())


async def list_workspaces_for(db: AsyncSession, identity: IdentityContext) -> List[Workspace]:
    """Workspaces the caller belongs to (all of them for a super-admin)."""
    stmt = select(Workspace).order_by(Workspace.created_at.desc())
    if not identity.is_super_admin:
        stmt = stmt.join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id).where(
            WorkspaceMember.user_id == identity.id
        )
    rows = await db.execute(stmt)
    return list(rows.scalars().unique().all())


async def verify_owner_invariant(db: AsyncSession, ws: Workspace) -> None:
    """Raise `InvalidStateError` unless exactly one owner member exists and it is `ws.owner_id`."""
    owners = (
        await db.execute(
            select(WorkspaceMember.user_id).where(
                WorkspaceMember.workspace_id == ws.id,
                WorkspaceMember.role == WorkspaceRole.OWNER,
            )
        )
    ).scalars().all()
    if len(owners) != 1 or owners[0] != ws.owner_id:
        logger.error("owner invariant violated workspace=%s owners=%s", ws.id, owners)
        raise InvalidStateError("owner-invariant", message="Workspace must keep exactly one owner")


def _merged_settings(current: Optional[Dict[str, Any]], patch: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = dict(DEFAULT_WORKSPACE_SETTINGS)
    merged.update(current or {})
    for k, v in (patch or {}).items():
        if k in DEFAULT_WORKSPACE_SETTINGS:
            merged[k] = v
    return merged


# ─────────────────────────────────────────────────────────────
# Workspace lifecycle
# ─────────────────────────────────────────────────────────────
async def create_workspace(
    db: AsyncSession,
    identity: IdentityContext,
    *,
    name: str,
    description: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Workspace:
    """Create a workspace with the caller as its single owner member."""
    ws = Workspace(
        name=name,
        description=description,
        owner_id=identity.id,
        settings=_merged_settings(None, settings),
    )
    async with unit_of_work(db):
        db.add(ws)
        await db.flush()
        db.add(WorkspaceMember(workspace_id=ws.id, user_id=identity.id, email=identity.email, role=WorkspaceRole.OWNER))
        await db.flush()
        await verify_owner_invariant(db, ws)
    logger.info("workspace created id=%s owner=%s", ws.id, identity.id)
    return ws


async def update_workspace(
    db: AsyncSession,
    ws: Workspace,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Workspace:
    async with unit_of_work(db):
        if name is not None:
            ws.name = name
        if description is not None:
            ws.description = description
        if settings is not None:
            ws.settings = _merged_settings(ws.settings, settings)
    return ws


async def delete_workspace(db: AsyncSession, ws: Workspace) -> None:
    """
    Delete a workspace.

    Steps
    -----
    1) Detach its videos (no workspace, no folder); videos are never deleted here.
    2) Delete its folders and members.
    3) Delete the workspace row.
    """
    async with unit_of_work(db):
        await db.execute(
            update(Video).where(Video.workspace_id == ws.id).values(workspace_id=None, folder_id=None)
        )
        await db.execute(delete(Folder).where(Folder.workspace_id == ws.id))
        await db.execute(delete(WorkspaceMember).where(WorkspaceMember.workspace_id == ws.id))
        await db.delete(ws)
    logger.info("workspace deleted id=%s", ws.id)


# ─────────────────────────────────────────────────────────────
# Member list
# ─────────────────────────────────────────────────────────────
def _assignable(role: WorkspaceRole) -> WorkspaceRole:
    if role == WorkspaceRole.OWNER:
        raise InvalidStateError("owner-role-reserved", message="The owner role cannot be assigned")
    return role


async def _member(db: AsyncSession, workspace_id: UUID, user_id: UUID) -> WorkspaceMember:
    member = (
        await db.execute(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )
    ).scalar_one_or_none()
    if member is None:
        raise NotFoundError("Member")
    return member


async def add_member(db: AsyncSession, ws: Workspace, *, email: str, role: WorkspaceRole = WorkspaceRole.MEMBER) -> WorkspaceMember:
    """Add an existing account (looked up by email) to the workspace."""
    role = _assignable(role)
    email = email.strip().lower()
    user = (await db.execute(select(User).where(func.lower(User.email) == email))).scalar_one_or_none()
    if user is None:
        raise NotFoundError("User")

    existing = (
        await db.execute(
            select(WorkspaceMember.id).where(
                WorkspaceMember.workspace_id == ws.id,
                WorkspaceMember.user_id == user.id,
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("User is already a member of this workspace", code="already-a-member")

    member = WorkspaceMember(workspace_id=ws.id, user_id=user.id, email=user.email, role=role)
    try:
        async with unit_of_work(db):
            db.add(member)
            await db.flush()
            await verify_owner_invariant(db, ws)
    except IntegrityError as e:
        raise ConflictError("User is already a member of this workspace", code="already-a-member") from e
    logger.info("member added workspace=%s user=%s role=%s", ws.id, user.id, role.value)
    return member


async def change_member_role(db: AsyncSession, ws: Workspace, user_id: UUID, role: WorkspaceRole) -> WorkspaceMember:
    role = _assignable(role)
    member = await _member(db, ws.id, user_id)
    async with unit_of_work(db):
        member.role = role
        await db.flush()
        await verify_owner_invariant(db, ws)
    logger.info("member role changed workspace=%s user=%s role=%s", ws.id, user_id, role.value)
    return member


async def remove_member(db: AsyncSession, ws: Workspace, user_id: UUID) -> None:
    member = await _member(db, ws.id, user_id)
    async with unit_of_work(db):
        await db.delete(member)
        await db.flush()
        await verify_owner_invariant(db, ws)
    logger.info("member removed workspace=%s user=%s", ws.id, user_id)


__all__ = [
    "get_workspace",
    "list_members",
    "list_workspaces_for",
    "verify_owner_invariant",
    "create_workspace",
    "update_workspace",
    "delete_workspace",
    "add_member",
    "change_member_role",
    "remove_member",
]
