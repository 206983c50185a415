from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, confloat, conint, constr

from app.schemas.enums import VideoAccess, VideoStatus


class CallToAction(BaseModel):
    enabled: Optional[bool] = None
    title: Optional[constr(max_length=200)] = None
    description: Optional[constr(max_length=2000)] = None
    button_text: Optional[constr(max_length=64)] = None
    button_link: Optional[constr(max_length=2048)] = None
    display_time: Optional[confloat(ge=0.0)] = Field(None, description="Seconds into playback")


class VideoSettings(BaseModel):
    player_color: Optional[constr(pattern=r"^#[0-9A-Fa-f]{6}$")] = None
    secondary_color: Optional[constr(pattern=r"^#[0-9A-Fa-f]{6}$")] = None
    autoplay: Optional[bool] = None
    show_controls: Optional[bool] = None
    call_to_action: Optional[CallToAction] = None


class AllowedUserIn(BaseModel):
    user_id: Optional[UUID] = None
    email: Optional[EmailStr] = None
    expires_at: Optional[datetime] = None


class AllowedUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: Optional[UUID] = None
    email: Optional[str] = None
    granted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class VideoCreate(BaseModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: Optional[constr(max_length=5000)] = None
    storage_key: constr(strip_whitespace=True, min_length=1, max_length=1024)
    thumbnail_key: Optional[constr(strip_whitespace=True, max_length=1024)] = None
    file_size: conint(ge=0)
    mime_type: constr(strip_whitespace=True, max_length=128) = "video/mp4"
    duration: Optional[confloat(ge=0.0)] = None
    workspace_id: Optional[UUID] = None
    folder_id: Optional[UUID] = None
    access: Optional[VideoAccess] = None
    allowed_users: List[AllowedUserIn] = []
    settings: Optional[VideoSettings] = None


class VideoUpdate(BaseModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[constr(max_length=5000)] = None
    access: Optional[VideoAccess] = None
    status: Optional[VideoStatus] = None
    folder_id: Optional[UUID] = Field(None, description="Explicit null moves the video to the workspace root")
    allowed_users: Optional[List[AllowedUserIn]] = None
    settings: Optional[VideoSettings] = None


class VideoGroupAssociation(BaseModel):
    client_group_id: UUID


class VideoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: int
    duration: Optional[float] = None
    owner_id: UUID
    client_group_id: Optional[UUID] = None
    workspace_id: Optional[UUID] = None
    folder_id: Optional[UUID] = None
    status: VideoStatus
    access: VideoAccess
    settings: dict
    views_count: int
    allowed_users: List[AllowedUserOut] = []
    created_at: datetime
    updated_at: datetime


class SignedReferenceOut(BaseModel):
    url: str
    expires_in: int
