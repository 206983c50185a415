from __future__ import annotations

"""
🏢 Client group service

- super-admin: full lifecycle (create, rename, status, delete)
- client-admin: may read their group and reassign its user accounts
- user: may read their own group

Membership is the `users.client_group_id` column; assigning a user moves the
account into the group.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccessDeniedError, ConflictError, InvalidStateError, NotFoundError
from app.db.models.campaign import Campaign, CampaignAssignment, CampaignVideo
from app.db.models.client_group import ClientGroup
from app.db.models.user import User
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.schemas.enums import ClientGroupStatus, DenyReason, GlobalRole

logger = logging.getLogger(__name__)


async def get_client_group(db: AsyncSession, group_id: UUID) -> ClientGroup:
    group = await db.get(ClientGroup, group_id)
    if group is None:
        raise NotFoundError("Client group")
    return group


async def current_group(db: AsyncSession, identity: IdentityContext) -> ClientGroup:
    """The caller's own group; super-admins belong to none."""
    if identity.is_super_admin:
        raise AccessDeniedError(DenyReason.NOT_ASSIGNED.value)
    if identity.client_group_id is None:
        raise NotFoundError("Client group")
    return await get_client_group(db, identity.client_group_id)


async def list_groups_for(db: AsyncSession, identity: IdentityContext) -> List[ClientGroup]:
    stmt = select(ClientGroup).order_by(ClientGroup.created_at.desc())
    if not identity.is_super_admin:
        if not identity.is_client_admin:
            raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
        stmt = stmt.where(ClientGroup.id == identity.client_group_id)
    rows = await db.execute(stmt)
    return list(rows.scalars().all())


async def group_users(db: AsyncSession, group_id: UUID) -> List[User]:
    rows = await db.execute(select(User).where(User.client_group_id == group_id).order_by(User.username))
    return list(rows.scalars().all())


async def _name_taken(db: AsyncSession, name: str, *, exclude: Optional[UUID] = None) -> bool:
    stmt = select(ClientGroup.id).where(func.lower(ClientGroup.name) == name.strip().lower())
    if exclude is not None:
        stmt = stmt.where(ClientGroup.id != exclude)
    return (await db.execute(stmt)).first() is not None


async def _validate_members(db: AsyncSession, user_ids: Sequence[UUID], *, role: Optional[GlobalRole] = None) -> List[User]:
    """Every id must exist and none may be a super-admin (or, with `role`, must hold it)."""
    if not user_ids:
        return []
    rows = await db.execute(select(User).where(User.id.in_(list(user_ids))))
    users = list(rows.scalars().all())
    valid = [
        u for u in users
        if GlobalRole(u.role) != GlobalRole.SUPER_ADMIN and (role is None or GlobalRole(u.role) == role)
    ]
    if len(valid) != len(set(user_ids)):
        raise InvalidStateError("invalid-user-ids", message="Invalid user IDs provided")
    return valid


async def _assign(db: AsyncSession, group_id: UUID, user_ids: Sequence[UUID], *, roles: Sequence[GlobalRole]) -> None:
    """Make exactly `user_ids` the members of the group among accounts holding `roles`."""
    await db.execute(
        update(User)
        .where(User.client_group_id == group_id, User.role.in_(list(roles)), User.id.not_in(list(user_ids)))
        .values(client_group_id=None)
        .execution_options(synchronize_session=False)
    )
    if user_ids:
        await db.execute(
            update(User)
            .where(User.id.in_(list(user_ids)))
            .values(client_group_id=group_id)
            .execution_options(synchronize_session=False)
        )


async def create_client_group(
    db: AsyncSession,
    identity: IdentityContext,
    *,
    name: str,
    description: Optional[str] = None,
    client_admin_ids: Sequence[UUID] = (),
    user_ids: Sequence[UUID] = (),
) -> ClientGroup:
    if not identity.is_super_admin:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    if await _name_taken(db, name):
        raise ConflictError("A client group with this name already exists", code="name-taken")
    await _validate_members(db, client_admin_ids, role=GlobalRole.CLIENT_ADMIN)
    await _validate_members(db, user_ids)

    group = ClientGroup(name=name.strip(), description=description, status=ClientGroupStatus.ACTIVE, created_by=identity.id)
    try:
        async with unit_of_work(db):
            db.add(group)
            await db.flush()
            await _assign(db, group.id, list(client_admin_ids) + list(user_ids), roles=[GlobalRole.CLIENT_ADMIN, GlobalRole.USER])
    except IntegrityError as e:
        raise ConflictError("A client group with this name already exists", code="name-taken") from e
    logger.info("client group created id=%s by=%s", group.id, identity.id)
    return group


async def update_client_group(
    db: AsyncSession,
    identity: IdentityContext,
    group: ClientGroup,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[ClientGroupStatus] = None,
    client_admin_ids: Optional[Sequence[UUID]] = None,
    user_ids: Optional[Sequence[UUID]] = None,
) -> ClientGroup:
    """
    Update a group.

    Client-admins may only reassign plain users; any other field from them
    is refused with ``insufficient-role``.
    """
    details_requested = any(v is not None for v in (name, description, status, client_admin_ids))
    if not identity.is_super_admin and details_requested:
        raise AccessDeniedError(DenyReason.INSUFFICIENT_ROLE.value)
    if name is not None and await _name_taken(db, name, exclude=group.id):
        raise ConflictError("A client group with this name already exists", code="name-taken")
    if client_admin_ids is not None:
        await _validate_members(db, client_admin_ids, role=GlobalRole.CLIENT_ADMIN)
    if user_ids is not None:
        await _validate_members(db, user_ids, role=GlobalRole.USER)

    async with unit_of_work(db):
        if name is not None:
            group.name = name.strip()
        if description is not None:
            group.description = description
        if status is not None:
            group.status = status
        if client_admin_ids is not None:
            await _assign(db, group.id, client_admin_ids, roles=[GlobalRole.CLIENT_ADMIN])
        if user_ids is not None:
            await _assign(db, group.id, user_ids, roles=[GlobalRole.USER])
    return group


async def delete_client_group(db: AsyncSession, group: ClientGroup) -> None:
    """Delete the group and its campaigns; member accounts are kept, unaffiliated."""
    campaign_ids = select(Campaign.id).where(Campaign.client_group_id == group.id).scalar_subquery()
    async with unit_of_work(db):
        await db.execute(delete(CampaignAssignment).where(CampaignAssignment.campaign_id.in_(campaign_ids)))
        await db.execute(delete(CampaignVideo).where(CampaignVideo.campaign_id.in_(campaign_ids)))
        await db.execute(delete(Campaign).where(Campaign.client_group_id == group.id))
        await db.execute(
            update(User)
            .where(User.client_group_id == group.id)
            .values(client_group_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(group)
    logger.info("client group deleted id=%s", group.id)


__all__ = [
    "get_client_group",
    "current_group",
    "list_groups_for",
    "group_users",
    "create_client_group",
    "update_client_group",
    "delete_client_group",
]
