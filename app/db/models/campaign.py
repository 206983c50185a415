from __future__ import annotations

"""
📣 Clipvault · Campaigns

A campaign bundles videos for a set of assigned users inside one client group.

Tables
------
• `campaigns`: campaign metadata (scoped to a client group)
• `campaign_assignments`: (campaign, user) pairs with a campaign role
• `campaign_videos`: (campaign, video) pairs
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin, utcnow
from app.schemas.enums import CampaignRole, CampaignStatus, enum_values


class Campaign(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "campaigns"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    client_group_id = Column(Uuid, ForeignKey("client_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(CampaignStatus, name="campaign_status", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=CampaignStatus.ACTIVE,
    )
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)


class CampaignAssignment(UUIDPKMixin, Base):
    __tablename__ = "campaign_assignments"

    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(
        Enum(CampaignRole, name="campaign_role", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=CampaignRole.PARTICIPANT,
    )
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_campaign_assignments_campaign_user"),
    )


class CampaignVideo(UUIDPKMixin, Base):
    __tablename__ = "campaign_videos"

    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("campaign_id", "video_id", name="uq_campaign_videos_campaign_video"),
        Index("ix_campaign_videos_video", "video_id"),
    )
