from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, constr

from app.schemas.enums import ClientGroupStatus
from app.schemas.user import UserOut


class ClientGroupCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    description: Optional[constr(max_length=2000)] = None
    client_admins: List[UUID] = []
    users: List[UUID] = []


class ClientGroupUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    description: Optional[constr(max_length=2000)] = None
    status: Optional[ClientGroupStatus] = None
    client_admins: Optional[List[UUID]] = None
    users: Optional[List[UUID]] = None


class ClientGroupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: Optional[str] = None
    status: ClientGroupStatus
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class ClientGroupDetailOut(ClientGroupOut):
    members: List[UserOut] = []
