# app/api/v1/routers/workspaces.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🗂️ Clipvault · Workspaces                                               ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /workspaces                        → Caller's workspaces       ║
# ║  - POST   /workspaces                        → Create (caller = owner)   ║
# ║  - GET    /workspaces/{id}                   → Detail + members          ║
# ║  - PATCH  /workspaces/{id}                   → Name / settings           ║
# ║  - DELETE /workspaces/{id}                   → Owner only                ║
# ║  - POST   /workspaces/{id}/members           → Add member by email       ║
# ║  - PATCH  /workspaces/{id}/members/{user_id} → Change role               ║
# ║  - DELETE /workspaces/{id}/members/{user_id} → Remove member             ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ The owner member can never be removed or re-roled, and the owner role    ║
# ║ is never granted through these endpoints.                                ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.domain.resources import WorkspaceResource
from app.schemas.enums import Action
from app.schemas.workspace import (
    MemberAdd,
    MemberOut,
    MemberRoleUpdate,
    WorkspaceCreate,
    WorkspaceDetailOut,
    WorkspaceOut,
    WorkspaceUpdate,
)
from app.services import workspaces as ws_service
from app.services.access import ensure_allowed

router = APIRouter(
    prefix="/workspaces",
    tags=["Workspaces"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
    },
)


async def _authorized(db: AsyncSession, identity: IdentityContext, workspace_id: UUID, action: Action, *, target_user_id=None):
    ws = await ws_service.get_workspace(db, workspace_id)
    ensure_allowed(identity, WorkspaceResource.from_model(ws), action, target_user_id=target_user_id)
    return ws


async def _detail(db: AsyncSession, ws) -> dict:
    body = WorkspaceOut.model_validate(ws).model_dump()
    body["members"] = await ws_service.list_members(db, ws.id)
    return body


@router.get("", response_model=List[WorkspaceOut], summary="Workspaces the caller belongs to")
async def list_workspaces(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await ws_service.list_workspaces_for(db, identity)


@router.post("", response_model=WorkspaceDetailOut, status_code=status.HTTP_201_CREATED, summary="Create a workspace")
async def create_workspace(
    payload: WorkspaceCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await ws_service.create_workspace(
        db,
        identity,
        name=payload.name,
        description=payload.description,
        settings=payload.settings.model_dump(exclude_none=True, mode="json") if payload.settings else None,
    )
    return await _detail(db, ws)


@router.get("/{workspace_id}", response_model=WorkspaceDetailOut, summary="Workspace detail")
async def get_workspace(
    workspace_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await _authorized(db, identity, workspace_id, Action.READ)
    return await _detail(db, ws)


@router.patch("/{workspace_id}", response_model=WorkspaceDetailOut, summary="Update a workspace")
async def update_workspace(
    workspace_id: UUID,
    payload: WorkspaceUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    action = Action.CHANGE_SETTINGS if payload.settings is not None else Action.RENAME
    ws = await _authorized(db, identity, workspace_id, action)
    ws = await ws_service.update_workspace(
        db,
        ws,
        name=payload.name,
        description=payload.description,
        settings=payload.settings.model_dump(exclude_none=True, mode="json") if payload.settings else None,
    )
    return await _detail(db, ws)


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a workspace")
async def delete_workspace(
    workspace_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await _authorized(db, identity, workspace_id, Action.DELETE)
    await ws_service.delete_workspace(db, ws)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─────────────────────────────────────────────────────────────────────────────
# 👥 Members
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/{workspace_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED, summary="Add a member")
async def add_member(
    workspace_id: UUID,
    payload: MemberAdd,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await _authorized(db, identity, workspace_id, Action.ADD_MEMBER)
    return await ws_service.add_member(db, ws, email=payload.email, role=payload.role)


@router.patch("/{workspace_id}/members/{user_id}", response_model=MemberOut, summary="Change a member's role")
async def change_member_role(
    workspace_id: UUID,
    user_id: UUID,
    payload: MemberRoleUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await _authorized(db, identity, workspace_id, Action.CHANGE_MEMBER_ROLE, target_user_id=user_id)
    return await ws_service.change_member_role(db, ws, user_id, payload.role)


@router.delete("/{workspace_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a member")
async def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await _authorized(db, identity, workspace_id, Action.REMOVE_MEMBER, target_user_id=user_id)
    await ws_service.remove_member(db, ws, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
