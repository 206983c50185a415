# tests/test_api/test_workspace_routes.py
import pytest

from app.schemas.enums import WorkspaceRole
from tests.fixtures.users import auth_headers

pytestmark = pytest.mark.anyio

API = "/api/v1/workspaces"


async def test_create_and_read_workspace(async_client, make_user):
    owner = await make_user()

    created = await async_client.post(
        API,
        json={"name": "  Studio  ", "settings": {"default_video_access": "private"}},
        headers=auth_headers(owner),
    )

    assert created.status_code == 201
    body = created.json()
    assert body["name"] == "Studio"
    assert body["owner_id"] == str(owner.id)
    assert body["settings"]["default_video_access"] == "private"
    assert [(m["user_id"], m["role"]) for m in body["members"]] == [(str(owner.id), "owner")]

    listed = await async_client.get(API, headers=auth_headers(owner))
    assert [w["id"] for w in listed.json()] == [body["id"]]


async def test_member_management_flow(async_client, make_user, make_workspace):
    owner = await make_user()
    invitee = await make_user()
    ws = await make_workspace(owner)
    headers = auth_headers(owner)

    added = await async_client.post(f"{API}/{ws.id}/members", json={"email": invitee.email}, headers=headers)
    duplicate = await async_client.post(f"{API}/{ws.id}/members", json={"email": invitee.email}, headers=headers)
    promoted = await async_client.patch(f"{API}/{ws.id}/members/{invitee.id}", json={"role": "admin"}, headers=headers)
    removed = await async_client.delete(f"{API}/{ws.id}/members/{invitee.id}", headers=headers)

    assert added.status_code == 201
    assert added.json()["role"] == "member"
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "already-a-member"
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"
    assert removed.status_code == 204


async def test_owner_member_is_untouchable(async_client, make_user, make_workspace):
    owner = await make_user()
    admin = await make_user()
    ws = await make_workspace(owner, members={admin: WorkspaceRole.ADMIN})

    by_admin = await async_client.delete(f"{API}/{ws.id}/members/{owner.id}", headers=auth_headers(admin))
    by_owner = await async_client.patch(
        f"{API}/{ws.id}/members/{owner.id}", json={"role": "member"}, headers=auth_headers(owner)
    )

    assert by_admin.status_code == 403
    assert by_owner.status_code == 403


async def test_owner_role_cannot_be_assigned(async_client, make_user, make_workspace):
    owner = await make_user()
    member = await make_user()
    ws = await make_workspace(owner, members={member: WorkspaceRole.MEMBER})

    resp = await async_client.patch(f"{API}/{ws.id}/members/{member.id}", json={"role": "owner"}, headers=auth_headers(owner))

    assert resp.status_code == 409
    assert resp.json()["code"] == "owner-role-reserved"


async def test_settings_need_admin_and_delete_needs_owner(async_client, make_user, make_workspace):
    owner = await make_user()
    admin = await make_user()
    member = await make_user()
    ws = await make_workspace(owner, members={admin: WorkspaceRole.ADMIN, member: WorkspaceRole.MEMBER})

    member_settings = await async_client.patch(
        f"{API}/{ws.id}", json={"settings": {"allow_public_sharing": False}}, headers=auth_headers(member)
    )
    admin_settings = await async_client.patch(
        f"{API}/{ws.id}", json={"settings": {"allow_public_sharing": False}}, headers=auth_headers(admin)
    )
    admin_delete = await async_client.delete(f"{API}/{ws.id}", headers=auth_headers(admin))
    owner_delete = await async_client.delete(f"{API}/{ws.id}", headers=auth_headers(owner))

    assert member_settings.status_code == 403
    assert admin_settings.status_code == 200
    assert admin_settings.json()["settings"]["allow_public_sharing"] is False
    assert admin_delete.status_code == 403
    assert owner_delete.status_code == 204
    assert (await async_client.get(f"{API}/{ws.id}", headers=auth_headers(owner))).status_code == 404


async def test_workspace_routes_require_a_token(async_client):
    resp = await async_client.get(API)
    assert resp.status_code == 401
