# tests/test_client_groups/test_campaigns.py
from datetime import timedelta

import pytest

from app.core.exceptions import AccessDeniedError, InvalidStateError, NotFoundError
from app.db.base_class import utcnow
from app.schemas.enums import Action, CampaignRole, CampaignStatus, GlobalRole
from app.services import campaigns as campaign_service
from tests.fixtures.users import auth_headers

pytestmark = pytest.mark.anyio


@pytest.fixture
def client_setup(make_client_group, make_user):
    async def _build():
        group = await make_client_group()
        admin = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=group.id)
        viewer = await make_user(client_group_id=group.id)
        return group, admin, viewer

    return _build


async def test_client_admin_creates_inside_own_group(db_session, client_setup, make_client_group, identity_for, make_video):
    group, admin, viewer = await client_setup()
    other = await make_client_group()
    video = await make_video(admin, client_group_id=group.id)

    campaign = await campaign_service.create_campaign(
        db_session,
        await identity_for(admin),
        name="Launch",
        client_group_id=other.id,
        assigned_users=[{"user_id": viewer.id}, {"user_id": viewer.id, "role": CampaignRole.MANAGER}],
        videos=[video.id, video.id],
    )

    assert campaign.client_group_id == group.id
    assert campaign.status == CampaignStatus.ACTIVE
    assigned = await campaign_service.assignments(db_session, campaign.id)
    assert [(a.user_id, a.role) for a in assigned] == [(viewer.id, CampaignRole.PARTICIPANT)]
    assert await campaign_service.video_ids(db_session, campaign.id) == [video.id]


async def test_super_admin_must_name_a_group(db_session, make_user, identity_for):
    root = await identity_for(await make_user(role=GlobalRole.SUPER_ADMIN))

    with pytest.raises(InvalidStateError) as exc_info:
        await campaign_service.create_campaign(db_session, root, name="Orphan")
    assert exc_info.value.code == "client-group-required"


async def test_end_before_start_is_refused(db_session, client_setup, identity_for):
    _, admin, _ = await client_setup()
    start = utcnow()

    with pytest.raises(InvalidStateError) as exc_info:
        await campaign_service.create_campaign(
            db_session, await identity_for(admin), name="Backwards", start_date=start, end_date=start - timedelta(days=1)
        )
    assert exc_info.value.code == "invalid-date-range"


async def test_assigned_user_reads_but_cannot_manage(db_session, client_setup, identity_for):
    _, admin, viewer = await client_setup()
    campaign = await campaign_service.create_campaign(
        db_session, await identity_for(admin), name="Quarterly", assigned_users=[{"user_id": viewer.id}]
    )
    viewer_identity = await identity_for(viewer)

    loaded = await campaign_service.load_authorized(db_session, viewer_identity, campaign.id, Action.READ)
    assert loaded.id == campaign.id
    assert [c.id for c in await campaign_service.list_campaigns_for(db_session, viewer_identity)] == [campaign.id]

    with pytest.raises(AccessDeniedError):
        await campaign_service.load_authorized(db_session, viewer_identity, campaign.id, Action.MANAGE)


async def test_unassigned_group_user_sees_nothing(db_session, client_setup, make_user, identity_for):
    group, admin, _ = await client_setup()
    bystander = await make_user(client_group_id=group.id)
    campaign = await campaign_service.create_campaign(db_session, await identity_for(admin), name="Private")
    identity = await identity_for(bystander)

    assert await campaign_service.list_campaigns_for(db_session, identity) == []
    with pytest.raises(AccessDeniedError) as exc_info:
        await campaign_service.load_authorized(db_session, identity, campaign.id, Action.READ)
    assert exc_info.value.reason == "not-assigned"


async def test_update_replaces_assignments_and_delete_removes(db_session, client_setup, make_user, identity_for):
    group, admin, viewer = await client_setup()
    newcomer = await make_user(client_group_id=group.id)
    campaign = await campaign_service.create_campaign(
        db_session, await identity_for(admin), name="Rolling", assigned_users=[{"user_id": viewer.id}]
    )

    await campaign_service.update_campaign(
        db_session, campaign, status=CampaignStatus.COMPLETED, assigned_users=[{"user_id": newcomer.id}]
    )

    assert campaign.status == CampaignStatus.COMPLETED
    assert [a.user_id for a in await campaign_service.assignments(db_session, campaign.id)] == [newcomer.id]

    await campaign_service.delete_campaign(db_session, campaign)
    with pytest.raises(NotFoundError):
        await campaign_service.get_campaign(db_session, campaign.id)


# ─────────────────────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────────────────────

async def test_campaign_routes(async_client, client_setup):
    _, admin, viewer = await client_setup()

    created = await async_client.post(
        "/api/v1/campaigns",
        json={"name": "Spring", "assigned_users": [{"user_id": str(viewer.id)}]},
        headers=auth_headers(admin),
    )
    assert created.status_code == 201
    campaign_id = created.json()["id"]

    as_viewer = await async_client.get(f"/api/v1/campaigns/{campaign_id}", headers=auth_headers(viewer))
    viewer_delete = await async_client.delete(f"/api/v1/campaigns/{campaign_id}", headers=auth_headers(viewer))
    admin_delete = await async_client.delete(f"/api/v1/campaigns/{campaign_id}", headers=auth_headers(admin))

    assert as_viewer.status_code == 200
    assert [a["user_id"] for a in as_viewer.json()["assigned_users"]] == [str(viewer.id)]
    assert viewer_delete.status_code == 403
    assert admin_delete.status_code == 204
