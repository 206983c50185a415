from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ShareLinkCreate(BaseModel):
    video_id: UUID
    expiry_date: Optional[datetime] = None
    require_email: bool = False


class ShareLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    video_id: UUID
    token: str
    expiry_date: Optional[datetime] = None
    require_email: bool
    access_count: int
    created_at: datetime


class SharedVideoOut(BaseModel):
    """Public metadata exposed through a share link."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    mime_type: Optional[str] = None
    duration: Optional[float] = None
    settings: dict
