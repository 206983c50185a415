# tests/test_client_groups/test_client_groups.py
import pytest
from sqlalchemy import select

from app.core.exceptions import AccessDeniedError, ConflictError, InvalidStateError
from app.db.models.campaign import Campaign
from app.db.models.client_group import ClientGroup
from app.db.models.user import User
from app.schemas.enums import ClientGroupStatus, GlobalRole, UserStatus
from app.services import client_groups as groups
from app.services import users as user_service

pytestmark = pytest.mark.anyio


async def _group_of(db_session, user):
    return (await db_session.execute(select(User.client_group_id).where(User.id == user.id))).scalar_one()


async def test_super_admin_creates_group_with_members(db_session, make_user, identity_for):
    root = await make_user(role=GlobalRole.SUPER_ADMIN)
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN)
    user = await make_user()

    group = await groups.create_client_group(
        db_session, await identity_for(root), name=" Acme ", client_admin_ids=[admin.id], user_ids=[user.id]
    )

    assert group.name == "Acme"
    assert group.status == ClientGroupStatus.ACTIVE
    assert await _group_of(db_session, admin) == group.id
    assert await _group_of(db_session, user) == group.id


async def test_group_names_are_unique_case_insensitively(db_session, make_user, identity_for, make_client_group):
    root = await identity_for(await make_user(role=GlobalRole.SUPER_ADMIN))
    await make_client_group("Acme")

    with pytest.raises(ConflictError) as exc_info:
        await groups.create_client_group(db_session, root, name="ACME")
    assert exc_info.value.code == "name-taken"


async def test_only_super_admin_creates_groups(db_session, make_user, identity_for):
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN)

    with pytest.raises(AccessDeniedError):
        await groups.create_client_group(db_session, await identity_for(admin), name="Mine")


async def test_super_admins_cannot_be_group_members(db_session, make_user, identity_for):
    root = await make_user(role=GlobalRole.SUPER_ADMIN)
    other_root = await make_user(role=GlobalRole.SUPER_ADMIN)

    with pytest.raises(InvalidStateError) as exc_info:
        await groups.create_client_group(db_session, await identity_for(root), name="Bad", user_ids=[other_root.id])
    assert exc_info.value.code == "invalid-user-ids"


async def test_client_admin_reassigns_only_plain_users(db_session, make_user, make_client_group, identity_for):
    group = await make_client_group()
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=group.id)
    stays = await make_user(client_group_id=group.id)
    leaves = await make_user(client_group_id=group.id)
    joins = await make_user()
    identity = await identity_for(admin)

    await groups.update_client_group(db_session, identity, group, user_ids=[stays.id, joins.id])

    assert await _group_of(db_session, stays) == group.id
    assert await _group_of(db_session, joins) == group.id
    assert await _group_of(db_session, leaves) is None
    assert await _group_of(db_session, admin) == group.id

    with pytest.raises(AccessDeniedError):
        await groups.update_client_group(db_session, identity, group, name="Renamed")


async def test_delete_group_removes_campaigns_and_keeps_accounts(db_session, make_user, make_client_group):
    group = await make_client_group()
    member = await make_user(client_group_id=group.id)
    db_session.add(Campaign(name="Spring", client_group_id=group.id, created_by=member.id))
    await db_session.commit()

    await groups.delete_client_group(db_session, group)

    assert (await db_session.execute(select(ClientGroup.id))).first() is None
    assert (await db_session.execute(select(Campaign.id))).first() is None
    assert await _group_of(db_session, member) is None


async def test_listing_is_scoped_to_the_callers_group(db_session, make_user, make_client_group, identity_for):
    mine = await make_client_group()
    await make_client_group()
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=mine.id)
    root = await make_user(role=GlobalRole.SUPER_ADMIN)

    assert [g.id for g in await groups.list_groups_for(db_session, await identity_for(admin))] == [mine.id]
    assert len(await groups.list_groups_for(db_session, await identity_for(root))) == 2
    with pytest.raises(AccessDeniedError):
        await groups.list_groups_for(db_session, await identity_for(await make_user()))


# ─────────────────────────────────────────────────────────────────────────────
# Account status
# ─────────────────────────────────────────────────────────────────────────────

async def test_client_admin_suspends_a_user_in_their_group(db_session, make_user, make_client_group, identity_for):
    group = await make_client_group()
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=group.id)
    target = await make_user(client_group_id=group.id)

    updated = await user_service.change_status(db_session, await identity_for(admin), target.id, UserStatus.SUSPENDED)

    assert updated.status == UserStatus.SUSPENDED


async def test_client_admin_cannot_touch_other_groups_or_admins(db_session, make_user, make_client_group, identity_for):
    group = await make_client_group()
    elsewhere = await make_client_group()
    admin = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=group.id)
    peer = await make_user(role=GlobalRole.CLIENT_ADMIN, client_group_id=group.id)
    foreign = await make_user(client_group_id=elsewhere.id)
    identity = await identity_for(admin)

    with pytest.raises(AccessDeniedError):
        await user_service.change_status(db_session, identity, foreign.id, UserStatus.BANNED)
    with pytest.raises(AccessDeniedError):
        await user_service.change_status(db_session, identity, peer.id, UserStatus.BANNED)
    with pytest.raises(AccessDeniedError):
        await user_service.change_status(db_session, identity, admin.id, UserStatus.BANNED)


async def test_manageable_users_exclude_super_admins(db_session, make_user, identity_for):
    root = await make_user(role=GlobalRole.SUPER_ADMIN)
    await make_user(role=GlobalRole.SUPER_ADMIN)
    plain = await make_user()

    listed = await user_service.list_manageable_users(db_session, await identity_for(root))

    assert [u.id for u in listed] == [plain.id]
