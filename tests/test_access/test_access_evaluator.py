# tests/test_access/test_access_evaluator.py
from uuid import uuid4

import pytest

from app.core.exceptions import AccessDeniedError
from app.domain.identity import IdentityContext, Membership
from app.domain.resources import (
    CampaignResource,
    ClientGroupResource,
    FolderResource,
    UserAccountResource,
    VideoResource,
    WorkspaceResource,
)
from app.schemas.enums import Action, DenyReason, GlobalRole, VideoAccess, WorkspaceRole
from app.services.access import ensure_allowed, evaluate


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _identity(*, role=GlobalRole.USER, email=None, client_group_id=None, memberships=()):
    uid = uuid4()
    return IdentityContext(
        id=uid,
        email=email or f"{uid.hex[:8]}@example.com",
        global_role=role,
        client_group_id=client_group_id,
        memberships=tuple(Membership(workspace_id=ws, role=r) for ws, r in memberships),
    )


def _video(owner_id=None, *, access=VideoAccess.PRIVATE, workspace_id=None, client_group_id=None, ids=(), emails=()):
    return VideoResource(
        id=uuid4(),
        owner_id=owner_id or uuid4(),
        access=access,
        workspace_id=workspace_id,
        client_group_id=client_group_id,
        allowed_user_ids=frozenset(ids),
        allowed_emails=frozenset(emails),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Anonymous & super-admin
# ─────────────────────────────────────────────────────────────────────────────

def test_anonymous_reads_public_video_only():
    assert evaluate(None, _video(access=VideoAccess.PUBLIC), Action.READ).allowed

    for access in (VideoAccess.PRIVATE, VideoAccess.WORKSPACE, VideoAccess.CUSTOM):
        decision = evaluate(None, _video(access=access), Action.READ)
        assert not decision.allowed
        assert decision.reason == DenyReason.ANONYMOUS

    assert evaluate(None, _video(access=VideoAccess.PUBLIC), Action.WRITE).reason == DenyReason.ANONYMOUS


def test_super_admin_is_allowed_everything_except_touching_the_owner_member():
    admin = _identity(role=GlobalRole.SUPER_ADMIN)
    owner_id = uuid4()
    ws = WorkspaceResource(id=uuid4(), owner_id=owner_id)

    assert evaluate(admin, _video(), Action.DELETE).allowed
    assert evaluate(admin, ws, Action.DELETE).allowed
    assert evaluate(admin, ClientGroupResource(id=uuid4()), Action.DELETE).allowed

    decision = evaluate(admin, ws, Action.REMOVE_MEMBER, target_user_id=owner_id)
    assert not decision.allowed
    assert decision.reason == DenyReason.CANNOT_MODIFY_OWNER


# ─────────────────────────────────────────────────────────────────────────────
# Videos
# ─────────────────────────────────────────────────────────────────────────────

def test_private_video_is_uploader_only():
    uploader = _identity()
    stranger = _identity()
    video = _video(uploader.id)

    assert evaluate(uploader, video, Action.READ).allowed
    assert evaluate(stranger, video, Action.READ).reason == DenyReason.NOT_OWNER


def test_workspace_video_requires_membership():
    ws_id = uuid4()
    member = _identity(memberships=[(ws_id, WorkspaceRole.MEMBER)])
    outsider = _identity()
    video = _video(access=VideoAccess.WORKSPACE, workspace_id=ws_id)

    assert evaluate(member, video, Action.READ).allowed
    assert evaluate(outsider, video, Action.READ).reason == DenyReason.NOT_A_MEMBER


def test_custom_video_matches_id_or_email_case_insensitively():
    by_id = _identity()
    by_email = _identity(email="viewer@example.com")
    other = _identity()
    video = _video(access=VideoAccess.CUSTOM, ids=[by_id.id], emails=["viewer@example.com"])

    assert evaluate(by_id, video, Action.READ).allowed
    assert evaluate(by_email, video, Action.READ).allowed
    assert evaluate(other, video, Action.READ).reason == DenyReason.NOT_IN_ALLOW_LIST


def test_uploader_keeps_read_access_whatever_the_mode():
    uploader = _identity()
    for access in VideoAccess:
        assert evaluate(uploader, _video(uploader.id, access=access), Action.READ).allowed


def test_video_mutations_by_role():
    ws_id = uuid4()
    group_id = uuid4()
    ws_admin = _identity(memberships=[(ws_id, WorkspaceRole.ADMIN)])
    ws_member = _identity(memberships=[(ws_id, WorkspaceRole.MEMBER)])
    client_admin = _identity(role=GlobalRole.CLIENT_ADMIN, client_group_id=group_id)
    foreign_admin = _identity(role=GlobalRole.CLIENT_ADMIN, client_group_id=uuid4())

    ws_video = _video(access=VideoAccess.WORKSPACE, workspace_id=ws_id, client_group_id=group_id)
    private_ws_video = _video(access=VideoAccess.PRIVATE, workspace_id=ws_id)

    assert evaluate(ws_admin, ws_video, Action.DELETE).allowed
    assert evaluate(client_admin, ws_video, Action.CHANGE_SETTINGS).allowed
    assert evaluate(ws_member, ws_video, Action.WRITE).allowed
    assert evaluate(ws_member, ws_video, Action.DELETE).reason == DenyReason.INSUFFICIENT_ROLE
    assert evaluate(ws_member, private_ws_video, Action.WRITE).reason == DenyReason.INSUFFICIENT_ROLE
    assert evaluate(foreign_admin, ws_video, Action.DELETE).reason == DenyReason.CLIENT_GROUP_MISMATCH


# ─────────────────────────────────────────────────────────────────────────────
# Workspaces & folders
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "role, action, allowed",
    [
        (WorkspaceRole.MEMBER, Action.READ, True),
        (WorkspaceRole.MEMBER, Action.WRITE, True),
        (WorkspaceRole.MEMBER, Action.RENAME, False),
        (WorkspaceRole.MEMBER, Action.ADD_MEMBER, False),
        (WorkspaceRole.ADMIN, Action.RENAME, True),
        (WorkspaceRole.ADMIN, Action.CHANGE_SETTINGS, True),
        (WorkspaceRole.ADMIN, Action.ADD_MEMBER, True),
        (WorkspaceRole.ADMIN, Action.DELETE, False),
        (WorkspaceRole.OWNER, Action.DELETE, True),
    ],
)
def test_workspace_actions_by_role(role, action, allowed):
    ws = WorkspaceResource(id=uuid4(), owner_id=uuid4())
    who = _identity(memberships=[(ws.id, role)])
    assert evaluate(who, ws, action).allowed is allowed


def test_non_member_is_denied_workspace_and_folder():
    ws_id = uuid4()
    outsider = _identity()
    assert evaluate(outsider, WorkspaceResource(id=ws_id, owner_id=uuid4()), Action.READ).reason == DenyReason.NOT_A_MEMBER
    assert evaluate(outsider, FolderResource(id=uuid4(), workspace_id=ws_id), Action.READ).reason == DenyReason.NOT_A_MEMBER


def test_owner_member_cannot_be_removed_or_demoted_even_by_the_owner():
    owner = _identity()
    ws = WorkspaceResource(id=uuid4(), owner_id=owner.id)
    owner = IdentityContext(
        id=owner.id,
        email=owner.email,
        global_role=owner.global_role,
        memberships=(Membership(workspace_id=ws.id, role=WorkspaceRole.OWNER),),
    )

    for action in (Action.REMOVE_MEMBER, Action.CHANGE_MEMBER_ROLE):
        decision = evaluate(owner, ws, action, target_user_id=owner.id)
        assert decision.reason == DenyReason.CANNOT_MODIFY_OWNER

    assert evaluate(owner, ws, Action.REMOVE_MEMBER, target_user_id=uuid4()).allowed


# ─────────────────────────────────────────────────────────────────────────────
# Client-group scope
# ─────────────────────────────────────────────────────────────────────────────

def test_client_admin_manages_own_group_but_cannot_delete_it():
    group_id = uuid4()
    client_admin = _identity(role=GlobalRole.CLIENT_ADMIN, client_group_id=group_id)
    group = ClientGroupResource(id=group_id)

    assert evaluate(client_admin, group, Action.MANAGE).allowed
    assert evaluate(client_admin, group, Action.DELETE).reason == DenyReason.INSUFFICIENT_ROLE
    assert evaluate(client_admin, ClientGroupResource(id=uuid4()), Action.READ).reason == DenyReason.CLIENT_GROUP_MISMATCH


def test_client_admin_changes_only_plain_users_of_the_group():
    group_id = uuid4()
    client_admin = _identity(role=GlobalRole.CLIENT_ADMIN, client_group_id=group_id)

    plain = UserAccountResource(id=uuid4(), global_role=GlobalRole.USER, client_group_id=group_id)
    peer = UserAccountResource(id=uuid4(), global_role=GlobalRole.CLIENT_ADMIN, client_group_id=group_id)

    assert evaluate(client_admin, plain, Action.MANAGE).allowed
    assert evaluate(client_admin, peer, Action.MANAGE).reason == DenyReason.INSUFFICIENT_ROLE


def test_assigned_user_reads_campaign_but_cannot_manage_it():
    user = _identity()
    campaign = CampaignResource(id=uuid4(), client_group_id=uuid4(), assigned_user_ids=frozenset({user.id}))

    assert evaluate(user, campaign, Action.READ).allowed
    assert evaluate(user, campaign, Action.MANAGE).reason == DenyReason.INSUFFICIENT_ROLE
    assert evaluate(_identity(), campaign, Action.READ).reason == DenyReason.NOT_ASSIGNED


def test_user_may_read_own_account():
    me = _identity()
    assert evaluate(me, UserAccountResource(id=me.id, global_role=GlobalRole.USER), Action.READ).allowed


# ─────────────────────────────────────────────────────────────────────────────
# ensure_allowed
# ─────────────────────────────────────────────────────────────────────────────

def test_ensure_allowed_raises_with_reason_but_generic_message():
    with pytest.raises(AccessDeniedError) as exc_info:
        ensure_allowed(_identity(), _video(), Action.READ)

    exc = exc_info.value
    assert exc.status_code == 403
    assert exc.reason == DenyReason.NOT_OWNER.value
    assert exc.message == "Access denied"


def test_ensure_allowed_returns_none_when_allowed():
    uploader = _identity()
    assert ensure_allowed(uploader, _video(uploader.id), Action.READ) is None
