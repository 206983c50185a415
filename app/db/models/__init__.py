"""ORM models; importing this package registers every table on `Base.metadata`."""

from .user import User
from .client_group import ClientGroup
from .campaign import Campaign, CampaignAssignment, CampaignVideo
from .workspace import Workspace, WorkspaceMember
from .folder import Folder
from .video import Video, VideoAllowedUser
from .view_session import ViewSession, ViewSessionQuarter, ViewSessionMark
from .share_link import ShareLink

__all__ = [
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
    "ViewSession",
    "ViewSessionQuarter",
    "ViewSessionMark",
    "ShareLink",
]
