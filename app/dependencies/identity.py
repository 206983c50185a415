from __future__ import annotations

"""
🪪 Identity dependencies
=======================

Compose an `IdentityContext` for the current request.

Steps
-----
1) Extract & decode the bearer token (`app.core.jwt`)
2) Load the `users` row named by ``sub`` (must exist and be active)
3) Load the caller's workspace memberships
4) Stamp ``request.state.user_id`` for the rate limiter and logs
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTokenException
from app.core.jwt import decode_token, get_bearer_token
from app.db.models.user import User
from app.db.models.workspace import WorkspaceMember
from app.db.session import get_async_db
from app.domain.identity import IdentityContext, Membership
from app.schemas.enums import GlobalRole, UserStatus, WorkspaceRole

logger = logging.getLogger(__name__)


def parse_uuid(value: str, field_name: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidTokenException(detail=f"Invalid {field_name} in token")


async def load_identity(db: AsyncSession, user_id: UUID) -> IdentityContext:
    """Build the identity for `user_id` from the database."""
    user = await db.get(User, user_id)
    if user is None:
        raise InvalidTokenException(detail="Unknown user")
    if UserStatus(user.status) != UserStatus.ACTIVE:
        logger.info("inactive account rejected user=%s status=%s", user.id, user.status)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    rows = await db.execute(
        select(WorkspaceMember.workspace_id, WorkspaceMember.role).where(WorkspaceMember.user_id == user.id)
    )
    memberships = tuple(Membership(workspace_id=ws_id, role=WorkspaceRole(role)) for ws_id, role in rows.all())
    return IdentityContext(
        id=user.id,
        email=user.email.lower(),
        global_role=GlobalRole(user.role),
        client_group_id=user.client_group_id,
        memberships=memberships,
    )


async def get_identity(request: Request, db: AsyncSession = Depends(get_async_db)) -> IdentityContext:
    """Authenticated caller; 401 without a valid token."""
    payload = decode_token(get_bearer_token(request))
    identity = await load_identity(db, parse_uuid(payload["sub"], "sub"))
    request.state.user_id = str(identity.id)
    return identity


async def get_optional_identity(request: Request, db: AsyncSession = Depends(get_async_db)) -> Optional[IdentityContext]:
    """Authenticated caller or ``None`` when no Authorization header is sent."""
    token = get_bearer_token(request, required=False)
    if token is None:
        return None
    identity = await load_identity(db, parse_uuid(decode_token(token)["sub"], "sub"))
    request.state.user_id = str(identity.id)
    return identity


__all__ = ["parse_uuid", "load_identity", "get_identity", "get_optional_identity"]
