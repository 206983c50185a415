# app/db/base.py
"""
Clipvault · SQLAlchemy Base registry
====================================

Import all ORM models so their tables are registered on `Base.metadata`.
Used by Alembic autogeneration and the test database fixture.

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Tenancy: users, client groups, campaigns, workspaces
# ───────────────────────────────────────────────────────────────
from app.db.models.user import User
from app.db.models.client_group import ClientGroup
from app.db.models.campaign import Campaign, CampaignAssignment, CampaignVideo
from app.db.models.workspace import Workspace, WorkspaceMember

# ───────────────────────────────────────────────────────────────
# Content: folders, videos, share links
# ───────────────────────────────────────────────────────────────
from app.db.models.folder import Folder
from app.db.models.video import Video, VideoAllowedUser
from app.db.models.share_link import ShareLink

# ───────────────────────────────────────────────────────────────
# Analytics
# ───────────────────────────────────────────────────────────────
from app.db.models.view_session import ViewSession, ViewSessionQuarter, ViewSessionMark

__all__ = [
    "Base",
    "User",
    "ClientGroup",
    "Campaign",
    "CampaignAssignment",
    "CampaignVideo",
    "Workspace",
    "WorkspaceMember",
    "Folder",
    "Video",
    "VideoAllowedUser",
    "ShareLink",
    "ViewSession",
    "ViewSessionQuarter",
    "ViewSessionMark",
]
