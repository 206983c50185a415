# app/api/v1/routers/folders.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 📁 Clipvault · Folders                                                   ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /folders/workspace/{workspace_id} → Root folders + root videos ║
# ║  - POST   /folders                          → Create (201)               ║
# ║  - GET    /folders/{id}/contents            → Sub-folders + videos       ║
# ║  - PATCH  /folders/{id}                     → Rename                     ║
# ║  - POST   /folders/{id}/move                → Reparent (null → root)     ║
# ║  - DELETE /folders/{id}                     → Cascade delete             ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Content actions (read, create, move) need membership; rename and delete  ║
# ║ need workspace admin or owner.                                           ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.domain.resources import FolderResource, WorkspaceResource
from app.schemas.enums import Action
from app.schemas.folder import (
    CascadeOut,
    FolderContentsOut,
    FolderCreate,
    FolderMove,
    FolderOut,
    FolderRename,
    WorkspaceFoldersOut,
)
from app.services.access import ensure_allowed
from app.services.folders import FolderHierarchyManager
from app.services.videos import list_workspace_videos
from app.services.workspaces import get_workspace

router = APIRouter(
    prefix="/folders",
    tags=["Folders"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Invalid structural change or tree busy"},
    },
)


async def _authorized_folder(manager: FolderHierarchyManager, identity: IdentityContext, folder_id: UUID, action: Action):
    folder = await manager.get(folder_id)
    ensure_allowed(identity, FolderResource.from_model(folder), action)
    return folder


@router.get("/workspace/{workspace_id}", response_model=WorkspaceFoldersOut, summary="Workspace root")
async def workspace_root(
    workspace_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await get_workspace(db, workspace_id)
    ensure_allowed(identity, WorkspaceResource.from_model(ws), Action.READ)
    manager = FolderHierarchyManager(db)
    return {
        "folders": await manager.list_root(workspace_id),
        "videos": await list_workspace_videos(db, workspace_id),
    }


@router.post("", response_model=FolderOut, status_code=status.HTTP_201_CREATED, summary="Create a folder")
async def create_folder(
    payload: FolderCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    ws = await get_workspace(db, payload.workspace_id)
    ensure_allowed(identity, WorkspaceResource.from_model(ws), Action.WRITE)
    return await FolderHierarchyManager(db).create(
        name=payload.name,
        workspace_id=payload.workspace_id,
        parent_folder_id=payload.parent_folder_id,
        created_by=identity.id,
    )


@router.get("/{folder_id}/contents", response_model=FolderContentsOut, summary="Folder contents")
async def folder_contents(
    folder_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    manager = FolderHierarchyManager(db)
    await _authorized_folder(manager, identity, folder_id, Action.READ)
    contents = await manager.contents(folder_id)
    return {"folder": contents.folder, "subfolders": contents.subfolders, "videos": contents.videos}


@router.patch("/{folder_id}", response_model=FolderOut, summary="Rename a folder")
async def rename_folder(
    folder_id: UUID,
    payload: FolderRename,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    manager = FolderHierarchyManager(db)
    await _authorized_folder(manager, identity, folder_id, Action.RENAME)
    return await manager.rename(folder_id, payload.name)


@router.post("/{folder_id}/move", response_model=FolderOut, summary="Move a folder")
async def move_folder(
    folder_id: UUID,
    payload: FolderMove,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    manager = FolderHierarchyManager(db)
    await _authorized_folder(manager, identity, folder_id, Action.WRITE)
    return await manager.move(folder_id, payload.parent_folder_id)


@router.delete("/{folder_id}", response_model=CascadeOut, summary="Delete a folder and its sub-tree")
async def delete_folder(
    folder_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    manager = FolderHierarchyManager(db)
    await _authorized_folder(manager, identity, folder_id, Action.DELETE)
    result = await manager.delete_cascade(folder_id)
    return {"deleted_folder_ids": result.deleted_folder_ids, "detached_video_count": result.detached_video_count}
