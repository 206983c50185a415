from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.enums import GlobalRole, UserStatus
from app.schemas.video import VideoOut


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    role: GlobalRole
    client_group_id: Optional[UUID] = None
    status: UserStatus
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserStatusUpdate(BaseModel):
    status: UserStatus


class PlatformStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    active_users: int
    total_videos: int
    total_views: int
    total_workspaces: int
    total_client_groups: int
    total_campaigns: int
    recent_users: List[UserOut] = []
    recent_videos: List[VideoOut] = []
