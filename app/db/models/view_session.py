from __future__ import annotations

"""
📊 Clipvault · View sessions (per-video playback telemetry)
==========================================================

One row per `(video_id, session_id)` in `view_sessions`; the session id is
client-generated and opaque. Watch-quarter data is split out so every write
is a single atomic statement:

• `view_session_quarters`: the deduplicated set of completed quarters
  (unique `(video_id, session_id, quarter)`, written with ON CONFLICT DO NOTHING)
• `view_session_marks`: append-only `{quarter, position, timestamp}` history

Privacy
-------
• `viewer_info.ip_hash` holds a SHA-256 digest, never the raw address.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin, utcnow
from app.db.types import FlexJSON


class ViewSession(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "view_sessions"

    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(128), nullable=False)
    user_id = Column(Uuid, nullable=True, doc="Viewer; NULL for anonymous playback")

    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = Column(DateTime(timezone=True), nullable=True)
    watch_time = Column(Float, nullable=False, default=0.0, doc="Seconds, life-to-date")
    cta_clicked = Column(Boolean, nullable=False, default=False)
    viewer_info = Column(FlexJSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("video_id", "session_id", name="uq_view_sessions_video_session"),
        CheckConstraint("watch_time >= 0", name="watch_time_non_negative"),
        Index("ix_view_sessions_video_start", "video_id", "start_time"),
    )


class ViewSessionQuarter(UUIDPKMixin, Base):
    __tablename__ = "view_session_quarters"

    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(128), nullable=False)
    quarter = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("video_id", "session_id", "quarter", name="uq_view_session_quarters_video_session_quarter"),
        CheckConstraint("quarter BETWEEN 0 AND 3", name="quarter_range"),
    )


class ViewSessionMark(UUIDPKMixin, Base):
    __tablename__ = "view_session_marks"

    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(128), nullable=False)
    quarter = Column(Integer, nullable=False)
    position = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("quarter BETWEEN 0 AND 3", name="quarter_range"),
        Index("ix_view_session_marks_video_session", "video_id", "session_id"),
    )
