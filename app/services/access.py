from __future__ import annotations

"""
🛡️ Access evaluation
====================

`evaluate(identity, resource, action)` is a pure function: no I/O, no
clock, no global state. Every delivery and mutation endpoint calls it (via
`ensure_allowed`) before touching data.

Rules (first match wins)
------------------------
0. Member actions that target the workspace owner are denied
   (``cannot-modify-owner``), for every caller including super-admins.
1. ``super-admin`` → allow.
2. Anonymous caller → allow only ``read`` on ``public`` videos.
3. Workspace-scoped resources (workspace, folder, ``workspace`` videos):
   membership required; members get content actions, owner/admin get
   admin actions, workspace deletion is owner-only.
4. ``private`` video read → uploader only.
5. ``custom`` video read → id or email on the (unexpired) allow list.
6. ``public`` video read → anyone.
7. Video mutations → uploader, workspace admin/owner, client-admin of the
   video's client group, or a member writing a ``workspace`` video.
8. Client-group scoped resources → client-admin of the same group; plain
   users may only read what they are assigned to.

A video's uploader may always read it, whatever the access mode.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from app.core.exceptions import AccessDeniedError
from app.core.metrics import inc_access_denial
from app.domain.identity import IdentityContext
from app.domain.resources import (
    CampaignResource,
    ClientGroupResource,
    FolderResource,
    Resource,
    UserAccountResource,
    VideoResource,
    WorkspaceResource,
)
from app.schemas.enums import Action, DenyReason, GlobalRole, VideoAccess, WorkspaceRole

logger = logging.getLogger(__name__)

CONTENT_ACTIONS = frozenset({Action.READ, Action.WRITE})
MEMBER_TARGET_ACTIONS = frozenset({Action.REMOVE_MEMBER, Action.CHANGE_MEMBER_ROLE})
_ADMIN_ROLES = frozenset({WorkspaceRole.OWNER, WorkspaceRole.ADMIN})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision.allow()


# ─────────────────────────────────────────────────────────────
# Rule helpers
# ─────────────────────────────────────────────────────────────
def _workspace_decision(identity: IdentityContext, workspace_id: Optional[UUID], action: Action, *, owner_only: bool) -> Decision:
    role = identity.role_in(workspace_id)
    if role is None:
        return Decision.deny(DenyReason.NOT_A_MEMBER)
    if owner_only:
        return ALLOW if role == WorkspaceRole.OWNER else Decision.deny(DenyReason.NOT_OWNER)
    if action in CONTENT_ACTIONS or role in _ADMIN_ROLES:
        return ALLOW
    return Decision.deny(DenyReason.INSUFFICIENT_ROLE)


def _video_read(identity: IdentityContext, video: VideoResource) -> Decision:
    if identity.id == video.owner_id:
        return ALLOW
    if video.access == VideoAccess.PUBLIC:
        return ALLOW
    if video.access == VideoAccess.WORKSPACE:
        return _workspace_decision(identity, video.workspace_id, Action.READ, owner_only=False)
    if video.access == VideoAccess.CUSTOM:
        if identity.id in video.allowed_user_ids or identity.email.lower() in video.allowed_emails:
            return ALLOW
        return Decision.deny(DenyReason.NOT_IN_ALLOW_LIST)
    return Decision.deny(DenyReason.NOT_OWNER)


def _video_mutation(identity: IdentityContext, video: VideoResource, action: Action) -> Decision:
    if identity.id == video.owner_id:
        return ALLOW
    role = identity.role_in(video.workspace_id)
    if role in _ADMIN_ROLES:
        return ALLOW
    if identity.is_client_admin and video.client_group_id is not None:
        if identity.client_group_id == video.client_group_id:
            return ALLOW
    if role == WorkspaceRole.MEMBER:
        if action == Action.WRITE and video.access == VideoAccess.WORKSPACE:
            return ALLOW
        return Decision.deny(DenyReason.INSUFFICIENT_ROLE)
    if identity.is_client_admin:
        return Decision.deny(DenyReason.CLIENT_GROUP_MISMATCH)
    return Decision.deny(DenyReason.NOT_OWNER)


def _client_scoped(identity: IdentityContext, resource: Resource, action: Action) -> Decision:
    group = resource.client_group_scope

    if isinstance(resource, UserAccountResource) and resource.id == identity.id and action == Action.READ:
        return ALLOW

    if identity.is_client_admin:
        if group is None or identity.client_group_id != group:
            return Decision.deny(DenyReason.CLIENT_GROUP_MISMATCH)
        if isinstance(resource, ClientGroupResource) and action == Action.DELETE:
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE)
        if isinstance(resource, UserAccountResource) and resource.global_role != GlobalRole.USER:
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE)
        return ALLOW

    if action != Action.READ:
        return Decision.deny(DenyReason.INSUFFICIENT_ROLE)
    if isinstance(resource, ClientGroupResource) and identity.client_group_id == resource.id:
        return ALLOW
    if isinstance(resource, CampaignResource) and identity.id in resource.assigned_user_ids:
        return ALLOW
    return Decision.deny(DenyReason.NOT_ASSIGNED)


# ─────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────
def evaluate(
    identity: Optional[IdentityContext],
    resource: Resource,
    action: Action,
    *,
    target_user_id: Optional[UUID] = None,
) -> Decision:
    """Decide whether `identity` may perform `action` on `resource`.

    `target_user_id` names the member affected by member-list actions
    (``remove-member`` / ``change-member-role``).
    """
    # Rule 0: the owner member is untouchable
    if (
        isinstance(resource, WorkspaceResource)
        and action in MEMBER_TARGET_ACTIONS
        and target_user_id is not None
        and target_user_id == resource.owner_id
    ):
        return Decision.deny(DenyReason.CANNOT_MODIFY_OWNER)

    # Rule 2: anonymous
    if identity is None:
        if isinstance(resource, VideoResource) and resource.access == VideoAccess.PUBLIC and action == Action.READ:
            return ALLOW
        return Decision.deny(DenyReason.ANONYMOUS)

    # Rule 1: super-admin
    if identity.is_super_admin:
        return ALLOW

    if isinstance(resource, VideoResource):
        if action == Action.READ:
            return _video_read(identity, resource)
        return _video_mutation(identity, resource, action)

    if isinstance(resource, WorkspaceResource):
        return _workspace_decision(identity, resource.id, action, owner_only=action == Action.DELETE)

    if isinstance(resource, FolderResource):
        return _workspace_decision(identity, resource.workspace_id, action, owner_only=False)

    return _client_scoped(identity, resource, action)


def ensure_allowed(
    identity: Optional[IdentityContext],
    resource: Resource,
    action: Action,
    *,
    target_user_id: Optional[UUID] = None,
) -> None:
    """Raise `AccessDeniedError` unless `evaluate` allows the action."""
    decision = evaluate(identity, resource, action, target_user_id=target_user_id)
    if decision.allowed:
        return
    reason = decision.reason.value if decision.reason else "denied"
    inc_access_denial(reason)
    logger.info(
        "deny user=%s resource=%s:%s action=%s reason=%s",
        identity.id if identity else "anonymous",
        type(resource).__name__,
        resource.id,
        action.value,
        reason,
    )
    raise AccessDeniedError(reason)


__all__ = ["Decision", "evaluate", "ensure_allowed", "CONTENT_ACTIONS", "MEMBER_TARGET_ACTIONS"]
