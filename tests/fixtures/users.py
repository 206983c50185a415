from __future__ import annotations

import time
from typing import Awaitable, Callable, Dict, Iterable, Optional
from uuid import uuid4

import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models.client_group import ClientGroup
from app.db.models.folder import Folder
from app.db.models.user import User
from app.db.models.video import Video, VideoAllowedUser
from app.db.models.workspace import DEFAULT_WORKSPACE_SETTINGS, Workspace, WorkspaceMember
from app.dependencies.identity import load_identity
from app.domain.identity import IdentityContext
from app.schemas.enums import GlobalRole, VideoAccess, WorkspaceRole
from app.services.folders import folder_path


# ──────────────────────────────────────────────────────────────
# 🔑 Tokens
# ──────────────────────────────────────────────────────────────
def token_for(user: User, *, ttl: int = 600) -> str:
    """HS256 access token the real `get_identity` dependency accepts."""
    claims = {"sub": str(user.id), "exp": int(time.time()) + ttl}
    if settings.JWT_AUDIENCE:
        claims["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(claims, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(user)}"}


# ──────────────────────────────────────────────────────────────
# 🧪 Factory: accounts
# ──────────────────────────────────────────────────────────────
@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Create an active account (role `user` unless told otherwise)."""
    async def _create(
        *,
        email: Optional[str] = None,
        role: GlobalRole = GlobalRole.USER,
        client_group_id=None,
    ) -> User:
        handle = uuid4().hex[:10]
        user = User(
            username=f"user_{handle}",
            email=(email or f"user_{handle}@example.com").lower(),
            role=role,
            client_group_id=client_group_id,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _create


@pytest.fixture
def make_client_group(db_session: AsyncSession) -> Callable[..., Awaitable[ClientGroup]]:
    async def _create(name: Optional[str] = None) -> ClientGroup:
        group = ClientGroup(name=name or f"group-{uuid4().hex[:8]}")
        db_session.add(group)
        await db_session.commit()
        return group

    return _create


@pytest.fixture
def identity_for(db_session: AsyncSession) -> Callable[[User], Awaitable[IdentityContext]]:
    """Identity exactly as the request dependency would build it."""
    async def _load(user: User) -> IdentityContext:
        return await load_identity(db_session, user.id)

    return _load


# ──────────────────────────────────────────────────────────────
# 🗂️ Factory: workspaces, folders, videos
# ──────────────────────────────────────────────────────────────
@pytest.fixture
def make_workspace(db_session: AsyncSession) -> Callable[..., Awaitable[Workspace]]:
    """Workspace owned by `owner`, plus `members` as ``{user: role}``."""
    async def _create(
        owner: User,
        *,
        members: Optional[Dict[User, WorkspaceRole]] = None,
        name: Optional[str] = None,
        settings_overrides: Optional[dict] = None,
    ) -> Workspace:
        ws = Workspace(
            name=name or f"ws-{uuid4().hex[:6]}",
            owner_id=owner.id,
            settings={**DEFAULT_WORKSPACE_SETTINGS, **(settings_overrides or {})},
        )
        db_session.add(ws)
        await db_session.flush()
        db_session.add(WorkspaceMember(workspace_id=ws.id, user_id=owner.id, email=owner.email, role=WorkspaceRole.OWNER))
        for user, role in (members or {}).items():
            db_session.add(WorkspaceMember(workspace_id=ws.id, user_id=user.id, email=user.email, role=role))
        await db_session.commit()
        return ws

    return _create


@pytest.fixture
def make_folder(db_session: AsyncSession) -> Callable[..., Awaitable[Folder]]:
    async def _create(workspace: Workspace, name: str, parent: Optional[Folder] = None) -> Folder:
        folder_id = uuid4()
        folder = Folder(
            id=folder_id,
            name=name,
            workspace_id=workspace.id,
            parent_folder_id=parent.id if parent else None,
            path=folder_path(folder_id, parent.path if parent else None),
        )
        db_session.add(folder)
        await db_session.commit()
        return folder

    return _create


@pytest.fixture
def make_video(db_session: AsyncSession) -> Callable[..., Awaitable[Video]]:
    async def _create(
        owner: User,
        *,
        access: VideoAccess = VideoAccess.PRIVATE,
        workspace: Optional[Workspace] = None,
        folder: Optional[Folder] = None,
        storage_key: Optional[str] = None,
        file_size: int = 1024,
        duration: Optional[float] = 120.0,
        allowed_emails: Iterable[str] = (),
        allowed_user_ids: Iterable = (),
        client_group_id=None,
    ) -> Video:
        grants = [VideoAllowedUser(email=e.lower()) for e in allowed_emails]
        grants += [VideoAllowedUser(user_id=uid) for uid in allowed_user_ids]
        video = Video(
            title=f"clip-{uuid4().hex[:6]}",
            storage_key=storage_key or f"videos/{uuid4().hex}.mp4",
            file_size=file_size,
            mime_type="video/mp4",
            duration=duration,
            owner_id=owner.id,
            client_group_id=client_group_id,
            workspace_id=workspace.id if workspace else None,
            folder_id=folder.id if folder else None,
            access=access,
            allowed_users=grants,
        )
        db_session.add(video)
        await db_session.commit()
        return video

    return _create


__all__ = [
    "token_for",
    "auth_headers",
    "make_user",
    "make_client_group",
    "identity_for",
    "make_workspace",
    "make_folder",
    "make_video",
]
