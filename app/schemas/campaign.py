from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, constr

from app.schemas.enums import CampaignRole, CampaignStatus


class AssignmentIn(BaseModel):
    user_id: UUID
    role: CampaignRole = CampaignRole.PARTICIPANT


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    role: CampaignRole
    assigned_at: datetime


class CampaignCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: Optional[constr(max_length=5000)] = None
    client_group_id: Optional[UUID] = None
    assigned_users: List[AssignmentIn] = []
    videos: List[UUID] = []
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[constr(max_length=5000)] = None
    status: Optional[CampaignStatus] = None
    assigned_users: Optional[List[AssignmentIn]] = None
    videos: Optional[List[UUID]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    client_group_id: UUID
    created_by: Optional[UUID] = None
    status: CampaignStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CampaignDetailOut(CampaignOut):
    assigned_users: List[AssignmentOut] = []
    videos: List[UUID] = []
