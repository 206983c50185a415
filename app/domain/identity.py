from __future__ import annotations

"""
🪪 IdentityContext: the normalized authenticated caller.

Built once per request by `app.dependencies.identity` from the `users` row and
its `workspace_members` rows. Immutable for the duration of the request; an
anonymous caller is represented by ``None``, not by a sentinel identity.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple
from uuid import UUID

from app.schemas.enums import GlobalRole, WorkspaceRole


@dataclass(frozen=True)
class Membership:
    workspace_id: UUID
    role: WorkspaceRole


@dataclass(frozen=True)
class IdentityContext:
    id: UUID
    email: str
    global_role: GlobalRole
    client_group_id: Optional[UUID] = None
    memberships: Tuple[Membership, ...] = field(default_factory=tuple)

    @property
    def is_super_admin(self) -> bool:
        return self.global_role == GlobalRole.SUPER_ADMIN

    @property
    def is_client_admin(self) -> bool:
        return self.global_role == GlobalRole.CLIENT_ADMIN

    def role_in(self, workspace_id: Optional[UUID]) -> Optional[WorkspaceRole]:
        """Membership role in `workspace_id`, or None when not a member."""
        if workspace_id is None:
            return None
        for m in self.memberships:
            if m.workspace_id == workspace_id:
                return m.role
        return None


__all__ = ["IdentityContext", "Membership"]
