from __future__ import annotations

"""
🔗 Clipvault · ShareLink (tokenized external access)

`video_id` is a weak reference: indexed but without a foreign key, so
deleting a video never blocks on its links. A link whose video is gone
resolves to 404.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from app.db.base_class import Base, UUIDPKMixin, utcnow


class ShareLink(UUIDPKMixin, Base):
    __tablename__ = "share_links"

    video_id = Column(Uuid, nullable=False, index=True)
    issued_by = Column(Uuid, nullable=False)
    token = Column(String(64), nullable=False, unique=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    require_email = Column(Boolean, nullable=False, default=False)
    access_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
