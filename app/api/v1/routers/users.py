# app/api/v1/routers/users.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 👥 Clipvault · Users                                                     ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /users              → Accounts the caller manages              ║
# ║  - PATCH  /users/{id}/status  → Activate / suspend / ban                 ║
# ║  - DELETE /users/me           → Close the caller's own account           ║
# ║  - DELETE /users/{id}         → Delete a managed account and its videos  ║
# ║  - GET    /users/stats        → Platform statistics (super-admin)        ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.schemas.user import PlatformStatsOut, UserOut, UserStatusUpdate
from app.services import users as user_service
from app.services.storage import ObjectStorage, get_storage

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserOut], summary="Manageable accounts")
async def list_users(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await user_service.list_manageable_users(db, identity)


@router.get("/stats", response_model=PlatformStatsOut, summary="Platform statistics")
async def platform_stats(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    stats = await user_service.platform_stats(db, identity)
    return PlatformStatsOut.model_validate(stats)


@router.patch("/{user_id}/status", response_model=UserOut, summary="Change an account's status")
async def change_user_status(
    user_id: UUID,
    payload: UserStatusUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await user_service.change_status(db, identity, user_id, payload.status)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT, summary="Close your own account")
async def delete_own_account(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
    storage: ObjectStorage = Depends(get_storage),
):
    await user_service.delete_own_account(db, storage, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a managed account")
async def delete_user(
    user_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
    storage: ObjectStorage = Depends(get_storage),
):
    await user_service.delete_user(db, storage, identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
