# app/api/v1/routers/campaigns.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 📣 Clipvault · Campaigns                                                 ║
# ║                                                                          ║
# ║ Endpoints:                                                               ║
# ║  - GET    /campaigns       → Role-filtered listing                       ║
# ║  - POST   /campaigns       → Create inside a client group                ║
# ║  - GET    /campaigns/{id}  → Detail + assignments + videos               ║
# ║  - PUT    /campaigns/{id}  → Update (replaces assignment/video lists)    ║
# ║  - DELETE /campaigns/{id}  → Delete                                      ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db
from app.dependencies.identity import get_identity
from app.domain.identity import IdentityContext
from app.schemas.campaign import CampaignCreate, CampaignDetailOut, CampaignOut, CampaignUpdate
from app.schemas.enums import Action
from app.services import campaigns as campaign_service

router = APIRouter(
    prefix="/campaigns",
    tags=["Campaigns"],
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
    },
)


async def _detail(db: AsyncSession, campaign) -> dict:
    body = CampaignOut.model_validate(campaign).model_dump()
    body["assigned_users"] = await campaign_service.assignments(db, campaign.id)
    body["videos"] = await campaign_service.video_ids(db, campaign.id)
    return body


@router.get("", response_model=List[CampaignOut], summary="Campaigns visible to the caller")
async def list_campaigns(
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    return await campaign_service.list_campaigns_for(db, identity)


@router.post("", response_model=CampaignDetailOut, status_code=status.HTTP_201_CREATED, summary="Create a campaign")
async def create_campaign(
    payload: CampaignCreate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    campaign = await campaign_service.create_campaign(
        db,
        identity,
        name=payload.name,
        client_group_id=payload.client_group_id,
        description=payload.description,
        assigned_users=[a.model_dump() for a in payload.assigned_users],
        videos=payload.videos,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return await _detail(db, campaign)


@router.get("/{campaign_id}", response_model=CampaignDetailOut, summary="Campaign detail")
async def get_campaign(
    campaign_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    campaign = await campaign_service.load_authorized(db, identity, campaign_id, Action.READ)
    return await _detail(db, campaign)


@router.put("/{campaign_id}", response_model=CampaignDetailOut, summary="Update a campaign")
async def update_campaign(
    campaign_id: UUID,
    payload: CampaignUpdate,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    campaign = await campaign_service.load_authorized(db, identity, campaign_id, Action.MANAGE)
    campaign = await campaign_service.update_campaign(
        db,
        campaign,
        name=payload.name,
        description=payload.description,
        status=payload.status,
        assigned_users=[a.model_dump() for a in payload.assigned_users] if payload.assigned_users is not None else None,
        videos=payload.videos,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return await _detail(db, campaign)


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a campaign")
async def delete_campaign(
    campaign_id: UUID,
    identity: IdentityContext = Depends(get_identity),
    db: AsyncSession = Depends(get_async_db),
):
    campaign = await campaign_service.load_authorized(db, identity, campaign_id, Action.DELETE)
    await campaign_service.delete_campaign(db, campaign)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
