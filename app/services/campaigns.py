from __future__ import annotations

"""
📣 Campaign service

Campaigns live inside one client group. Listing is role-filtered; every
single-campaign operation goes through the access evaluator with a
`CampaignResource` snapshot (client group + assigned users).
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStateError, NotFoundError
from app.db.models.campaign import Campaign, CampaignAssignment, CampaignVideo
from app.db.models.client_group import ClientGroup
from app.db.session import unit_of_work
from app.domain.identity import IdentityContext
from app.domain.resources import CampaignResource, ClientGroupResource
from app.schemas.enums import Action, CampaignRole, CampaignStatus
from app.services.access import ensure_allowed

logger = logging.getLogger(__name__)


async def get_campaign(db: AsyncSession, campaign_id: UUID) -> Campaign:
    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign")
    return campaign


async def assignments(db: AsyncSession, campaign_id: UUID) -> List[CampaignAssignment]:
    rows = await db.execute(
        select(CampaignAssignment)
        .where(CampaignAssignment.campaign_id == campaign_id)
        .order_by(CampaignAssignment.assigned_at)
    )
    return list(rows.scalars().all())


async def video_ids(db: AsyncSession, campaign_id: UUID) -> List[UUID]:
    rows = await db.execute(select(CampaignVideo.video_id).where(CampaignVideo.campaign_id == campaign_id))
    return list(rows.scalars().all())


async def campaign_resource(db: AsyncSession, campaign: Campaign) -> CampaignResource:
    assigned = await assignments(db, campaign.id)
    return CampaignResource(
        id=campaign.id,
        client_group_id=campaign.client_group_id,
        assigned_user_ids=frozenset(a.user_id for a in assigned),
        owner_id=campaign.created_by,
    )


async def load_authorized(db: AsyncSession, identity: IdentityContext, campaign_id: UUID, action: Action) -> Campaign:
    campaign = await get_campaign(db, campaign_id)
    ensure_allowed(identity, await campaign_resource(db, campaign), action)
    return campaign


async def list_campaigns_for(db: AsyncSession, identity: IdentityContext) -> List[Campaign]:
    """Super-admin: all; client-admin: their group; user: assigned campaigns."""
    stmt = select(Campaign).order_by(Campaign.created_at.desc())
    if identity.is_super_admin:
        pass
    elif identity.is_client_admin:
        stmt = stmt.where(Campaign.client_group_id == identity.client_group_id)
    else:
        stmt = stmt.join(CampaignAssignment, CampaignAssignment.campaign_id == Campaign.id).where(
            CampaignAssignment.user_id == identity.id
        )
    rows = await db.execute(stmt)
    return list(rows.scalars().unique().all())


def _assignment_rows(campaign_id: UUID, entries: Iterable[Dict[str, Any]]) -> List[CampaignAssignment]:
    seen = set()
    out: List[CampaignAssignment] = []
    for e in entries:
        uid = e["user_id"]
        if uid in seen:
            continue
        seen.add(uid)
        out.append(CampaignAssignment(campaign_id=campaign_id, user_id=uid, role=e.get("role") or CampaignRole.PARTICIPANT))
    return out


async def _replace_links(
    db: AsyncSession,
    campaign_id: UUID,
    assigned: Optional[Iterable[Dict[str, Any]]],
    videos: Optional[Sequence[UUID]],
) -> None:
    if assigned is not None:
        await db.execute(delete(CampaignAssignment).where(CampaignAssignment.campaign_id == campaign_id))
        db.add_all(_assignment_rows(campaign_id, assigned))
    if videos is not None:
        await db.execute(delete(CampaignVideo).where(CampaignVideo.campaign_id == campaign_id))
        db.add_all(CampaignVideo(campaign_id=campaign_id, video_id=v) for v in dict.fromkeys(videos))


async def create_campaign(
    db: AsyncSession,
    identity: IdentityContext,
    *,
    name: str,
    client_group_id: Optional[UUID] = None,
    description: Optional[str] = None,
    assigned_users: Iterable[Dict[str, Any]] = (),
    videos: Sequence[UUID] = (),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Campaign:
    """
    Create a campaign.

    Client-admins always create inside their own group; super-admins must
    name the group.
    """
    group_id = identity.client_group_id if identity.is_client_admin else client_group_id
    if group_id is None:
        raise InvalidStateError("client-group-required", message="A client group is required")
    if await db.get(ClientGroup, group_id) is None:
        raise NotFoundError("Client group")
    ensure_allowed(identity, ClientGroupResource(id=group_id), Action.MANAGE)
    if start_date and end_date and end_date < start_date:
        raise InvalidStateError("invalid-date-range", message="End date precedes start date")

    campaign = Campaign(
        name=name,
        description=description,
        client_group_id=group_id,
        created_by=identity.id,
        status=CampaignStatus.ACTIVE,
        start_date=start_date,
        end_date=end_date,
    )
    async with unit_of_work(db):
        db.add(campaign)
        await db.flush()
        await _replace_links(db, campaign.id, list(assigned_users), list(videos))
    logger.info("campaign created id=%s group=%s by=%s", campaign.id, group_id, identity.id)
    return campaign


async def update_campaign(
    db: AsyncSession,
    campaign: Campaign,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    status: Optional[CampaignStatus] = None,
    assigned_users: Optional[Iterable[Dict[str, Any]]] = None,
    videos: Optional[Sequence[UUID]] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Campaign:
    async with unit_of_work(db):
        if name is not None:
            campaign.name = name
        if description is not None:
            campaign.description = description
        if status is not None:
            campaign.status = status
        if start_date is not None:
            campaign.start_date = start_date
        if end_date is not None:
            campaign.end_date = end_date
        await _replace_links(
            db,
            campaign.id,
            list(assigned_users) if assigned_users is not None else None,
            list(videos) if videos is not None else None,
        )
    return campaign


async def delete_campaign(db: AsyncSession, campaign: Campaign) -> None:
    async with unit_of_work(db):
        await db.execute(delete(CampaignAssignment).where(CampaignAssignment.campaign_id == campaign.id))
        await db.execute(delete(CampaignVideo).where(CampaignVideo.campaign_id == campaign.id))
        await db.delete(campaign)
    logger.info("campaign deleted id=%s", campaign.id)


__all__ = [
    "get_campaign",
    "assignments",
    "video_ids",
    "campaign_resource",
    "load_authorized",
    "list_campaigns_for",
    "create_campaign",
    "update_campaign",
    "delete_campaign",
]
