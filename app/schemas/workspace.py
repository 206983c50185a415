from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, conint, constr

from app.schemas.enums import VideoAccess, WorkspaceRole


class WorkspaceSettings(BaseModel):
    require_email_for_videos: Optional[bool] = None
    default_video_expiry_days: Optional[conint(ge=1, le=3650)] = None
    allow_public_sharing: Optional[bool] = None
    default_video_access: Optional[VideoAccess] = None


class WorkspaceCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: Optional[constr(max_length=2000)] = None
    settings: Optional[WorkspaceSettings] = None


class WorkspaceUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[constr(max_length=2000)] = None
    settings: Optional[WorkspaceSettings] = None


class MemberAdd(BaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.MEMBER


class MemberRoleUpdate(BaseModel):
    role: WorkspaceRole


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    role: WorkspaceRole
    joined_at: datetime


class WorkspaceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    owner_id: UUID
    settings: dict
    created_at: datetime
    updated_at: datetime


class WorkspaceDetailOut(WorkspaceOut):
    members: List[MemberOut] = []
