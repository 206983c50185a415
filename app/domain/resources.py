from __future__ import annotations

"""
🎯 Resource variants seen by the access evaluator.

Each variant is a small frozen snapshot built from ORM rows right before an
evaluation. The evaluator only uses the capability properties below:

- ``owner_id``: the account that owns/uploaded the resource (if any)
- ``workspace_scope``: workspace whose membership governs the resource
- ``client_group_scope``: client group whose admins govern the resource
- ``access_mode``: video access mode (videos only)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Iterable, Optional, Union
from uuid import UUID

from app.db.base_class import ensure_utc, utcnow
from app.schemas.enums import GlobalRole, VideoAccess


@dataclass(frozen=True)
class WorkspaceResource:
    id: UUID
    owner_id: UUID

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return self.id

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return None

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return None

    @classmethod
    def from_model(cls, ws) -> "WorkspaceResource":
        return cls(id=ws.id, owner_id=ws.owner_id)


@dataclass(frozen=True)
class FolderResource:
    id: UUID
    workspace_id: UUID
    owner_id: Optional[UUID] = None

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return self.workspace_id

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return None

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return None

    @classmethod
    def from_model(cls, folder) -> "FolderResource":
        return cls(id=folder.id, workspace_id=folder.workspace_id, owner_id=folder.created_by)


@dataclass(frozen=True)
class VideoResource:
    id: UUID
    owner_id: UUID
    access: VideoAccess
    workspace_id: Optional[UUID] = None
    client_group_id: Optional[UUID] = None
    allowed_user_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    allowed_emails: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return self.workspace_id

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return self.client_group_id

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return self.access

    @classmethod
    def from_model(cls, video, *, now: Optional[datetime] = None) -> "VideoResource":
        """Snapshot a `Video`; expired allow-list grants are dropped here."""
        now = now or utcnow()
        grants: Iterable = [
            g for g in (video.allowed_users or [])
            if g.expires_at is None or ensure_utc(g.expires_at) > now
        ]
        return cls(
            id=video.id,
            owner_id=video.owner_id,
            access=VideoAccess(video.access),
            workspace_id=video.workspace_id,
            client_group_id=video.client_group_id,
            allowed_user_ids=frozenset(g.user_id for g in grants if g.user_id is not None),
            allowed_emails=frozenset(g.email.lower() for g in grants if g.email),
        )


@dataclass(frozen=True)
class ClientGroupResource:
    id: UUID

    @property
    def owner_id(self) -> Optional[UUID]:
        return None

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return None

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return self.id

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return None


@dataclass(frozen=True)
class CampaignResource:
    id: UUID
    client_group_id: UUID
    assigned_user_ids: FrozenSet[UUID] = field(default_factory=frozenset)
    owner_id: Optional[UUID] = None

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return None

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return self.client_group_id

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return None


@dataclass(frozen=True)
class UserAccountResource:
    id: UUID
    global_role: GlobalRole
    client_group_id: Optional[UUID] = None

    @property
    def owner_id(self) -> Optional[UUID]:
        return self.id

    @property
    def workspace_scope(self) -> Optional[UUID]:
        return None

    @property
    def client_group_scope(self) -> Optional[UUID]:
        return self.client_group_id

    @property
    def access_mode(self) -> Optional[VideoAccess]:
        return None

    @classmethod
    def from_model(cls, user) -> "UserAccountResource":
        return cls(id=user.id, global_role=GlobalRole(user.role), client_group_id=user.client_group_id)


Resource = Union[
    WorkspaceResource,
    FolderResource,
    VideoResource,
    ClientGroupResource,
    CampaignResource,
    UserAccountResource,
]

__all__ = [
    "WorkspaceResource",
    "FolderResource",
    "VideoResource",
    "ClientGroupResource",
    "CampaignResource",
    "UserAccountResource",
    "Resource",
]
