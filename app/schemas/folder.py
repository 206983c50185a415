from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, constr

from app.schemas.video import VideoOut

FolderName = constr(strip_whitespace=True, min_length=1, max_length=255)


class FolderCreate(BaseModel):
    name: FolderName
    workspace_id: UUID
    parent_folder_id: Optional[UUID] = None


class FolderRename(BaseModel):
    name: FolderName


class FolderMove(BaseModel):
    parent_folder_id: Optional[UUID] = None


class FolderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    workspace_id: UUID
    parent_folder_id: Optional[UUID] = None
    path: str
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class FolderContentsOut(BaseModel):
    folder: FolderOut
    subfolders: List[FolderOut]
    videos: List[VideoOut]


class WorkspaceFoldersOut(BaseModel):
    folders: List[FolderOut]
    videos: List[VideoOut]


class CascadeOut(BaseModel):
    deleted_folder_ids: List[UUID]
    detached_video_count: int
