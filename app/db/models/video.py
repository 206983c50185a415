from __future__ import annotations

"""
🎞️ Clipvault · Video & VideoAllowedUser
======================================

A video's bytes live in object storage under `storage_key`; this row holds
metadata, placement (client group / workspace / folder), the access mode,
player settings and the raw `views_count` counter.

Access modes
------------
• ``private``: uploader only
• ``workspace``: members of `workspace_id`
• ``public``: anyone, including anonymous callers
• ``custom``: ids/emails listed in `video_allowed_users` (unexpired grants)

`views_count` is incremented with a single ``UPDATE … SET views_count =
views_count + 1`` per successful delivery.
"""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin, utcnow
from app.db.types import FlexJSON
from app.schemas.enums import VideoAccess, VideoStatus, enum_values

DEFAULT_VIDEO_SETTINGS = {
    "player_color": "#E11D48",
    "secondary_color": "#581C87",
    "autoplay": False,
    "show_controls": True,
    "call_to_action": {
        "enabled": False,
        "title": "Want to learn more?",
        "description": "",
        "button_text": "Visit Website",
        "button_link": "",
        "display_time": 0,
    },
}


class Video(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "videos"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    storage_key = Column(String(1024), nullable=False)
    thumbnail_key = Column(String(1024), nullable=True)
    file_size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(128), nullable=False, default="video/mp4")
    duration = Column(Float, nullable=True, doc="Seconds; NULL until probed")

    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_group_id = Column(Uuid, ForeignKey("client_groups.id", ondelete="SET NULL"), nullable=True, index=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="SET NULL"), nullable=True)
    folder_id = Column(Uuid, ForeignKey("folders.id", ondelete="SET NULL"), nullable=True, index=True)

    status = Column(
        Enum(VideoStatus, name="video_status", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=VideoStatus.READY,
    )
    access = Column(
        Enum(VideoAccess, name="video_access", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=VideoAccess.PRIVATE,
    )
    settings = Column(FlexJSON, nullable=False, default=lambda: dict(DEFAULT_VIDEO_SETTINGS))
    views_count = Column(Integer, nullable=False, default=0)

    allowed_users = relationship(
        "VideoAllowedUser",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("views_count >= 0", name="views_non_negative"),
        CheckConstraint("file_size >= 0", name="size_non_negative"),
        Index("ix_videos_workspace_folder", "workspace_id", "folder_id"),
    )


class VideoAllowedUser(UUIDPKMixin, Base):
    """One grant for a ``custom``-access video; matched by user id or email."""

    __tablename__ = "video_allowed_users"

    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=True)
    email = Column(String(320), nullable=True)
    granted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("user_id IS NOT NULL OR email IS NOT NULL", name="grant_has_subject"),
    )
