from __future__ import annotations

"""
📁 Clipvault · Folder (per-workspace tree)
=========================================

Folders form a forest per workspace via `parent_folder_id`.

Integrity
---------
• A folder's parent lives in the same workspace and no folder is its own
  ancestor (enforced by `app.services.folders.FolderHierarchyManager`).
• `path` is materialized: ``"/" + id`` for roots, ``parent.path + "/" + id``
  otherwise. It is written only by the hierarchy manager.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String, Text, Uuid

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin


class Folder(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "folders"

    name = Column(String(255), nullable=False)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    parent_folder_id = Column(Uuid, ForeignKey("folders.id"), nullable=True)
    path = Column(Text, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        CheckConstraint("parent_folder_id IS NULL OR parent_folder_id <> id", name="not_own_parent"),
        Index("ix_folders_workspace_parent", "workspace_id", "parent_folder_id"),
    )
