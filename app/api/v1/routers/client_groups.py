# app/api/v1/routers/client_groups.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🏢 Clipvault · Client groups                                             ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /client-groups/current  → Caller's own group                   ║
# ║  - GET    /client-groups          → Super-admin all; client-admin own    ║
# ║  - POST   /client-groups          → Create (super-admin)                 ║
# ║  - GET    /client-groups/{id}     → Detail + member accounts             ║
# ║  - PUT    /client-groups/{id}     → Update (client-admin: users only)    ║
# ║  - DELETE /client-groups/{id}     → Delete (super-admin)                 ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.domain.resources import ClientGroupResource
from app.schemas.client_group import ClientGroupCreate, ClientGroupDetailOut, ClientGroupOut, ClientGroupUpdate
from app.schemas.enums import Action
from app.services import client_groups as group_service
from app.services.access import ensure_allowed

router = APIRouter(
    prefix="/client-groups",
    tags=["Client groups"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
    },
)


async def _authorized(db: AsyncSession, identity: IdentityContext, group_id: UUID, action: Action):
    group = await group_service.get_client_group(db, group_id)
    ensure_allowed(identity, ClientGroupResource(id=group.id), action)
    return group


async def _detail(db: AsyncSession, group) -> dict:
    body = ClientGroupOut.model_validate(group).model_dump()
    body["members"] = await group_service.group_users(db, group.id)
    return body


@router.get("/current", response_model=ClientGroupDetailOut, summary="The caller's client group")
async def current_group(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    group = await group_service.current_group(db, identity)
    return await _detail(db, group)


@router.get("", response_model=List[ClientGroupOut], summary="List client groups")
async def list_groups(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_service.list_groups_for(db, identity)


@router.post("", response_model=ClientGroupDetailOut, status_code=status.HTTP_201_CREATED, summary="Create a client group")
async def create_group(
    payload: ClientGroupCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    group = await group_service.create_client_group(
        db,
        identity,
        name=payload.name,
        description=payload.description,
        client_admin_ids=payload.client_admins,
        user_ids=payload.users,
    )
    return await _detail(db, group)


@router.get("/{group_id}", response_model=ClientGroupDetailOut, summary="Client group detail")
async def get_group(
    group_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    group = await _authorized(db, identity, group_id, Action.READ)
    return await _detail(db, group)


@router.put("/{group_id}", response_model=ClientGroupDetailOut, summary="Update a client group")
async def update_group(
    group_id: UUID,
    payload: ClientGroupUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    group = await _authorized(db, identity, group_id, Action.MANAGE)
    group = await group_service.update_client_group(
        db,
        identity,
        group,
        name=payload.name,
        description=payload.description,
        status=payload.status,
        client_admin_ids=payload.client_admins,
        user_ids=payload.users,
    )
    return await _detail(db, group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a client group")
async def delete_group(
    group_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    group = await _authorized(db, identity, group_id, Action.DELETE)
    await group_service.delete_client_group(db, group)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
