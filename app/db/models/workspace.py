from __future__ import annotations

"""
🗂️ Clipvault · Workspace & WorkspaceMember
=========================================

A workspace is a collaboration space owning folders and videos. Membership is
an explicit row per (workspace, user) carrying a role.

Integrity
---------
• `(workspace_id, user_id)` is unique.
• Exactly one member holds the ``owner`` role and it is `workspaces.owner_id`;
  the membership service re-checks this after every member-list write.
• `settings` is a small JSON document (see `DEFAULT_WORKSPACE_SETTINGS`).
"""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin, utcnow
from app.db.types import FlexJSON
from app.schemas.enums import VideoAccess, WorkspaceRole, enum_values

DEFAULT_WORKSPACE_SETTINGS = {
    "require_email_for_videos": False,
    "default_video_expiry_days": None,
    "allow_public_sharing": True,
    "default_video_access": VideoAccess.WORKSPACE.value,
}


class Workspace(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "workspaces"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    settings = Column(FlexJSON, nullable=False, default=lambda: dict(DEFAULT_WORKSPACE_SETTINGS))


class WorkspaceMember(UUIDPKMixin, Base):
    __tablename__ = "workspace_members"

    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    role = Column(
        Enum(WorkspaceRole, name="workspace_role", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=WorkspaceRole.MEMBER,
    )
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
    )
