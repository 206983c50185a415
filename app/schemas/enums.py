from __future__ import annotations

"""
Central enum definitions used across Clipvault.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (columns store the value).
• Grouped by domain; keep `__all__` in sync when adding new enums.
"""

from enum import Enum as PyEnum
from typing import List, Type


def enum_values(enum_cls: Type[PyEnum]) -> List[str]:
    """`values_callable` for SQLAlchemy ``Enum`` columns (persist values, not names)."""
    return [m.value for m in enum_cls]


# ──────────────────────────────────────────────────────────────
# Identity / tenancy
# ──────────────────────────────────────────────────────────────
class GlobalRole(str, PyEnum):
    """Platform-wide role of an account."""
    SUPER_ADMIN = "super-admin"
    CLIENT_ADMIN = "client-admin"
    USER = "user"


class UserStatus(str, PyEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"


class WorkspaceRole(str, PyEnum):
    """Role of a member inside one workspace."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ClientGroupStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CampaignStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class CampaignRole(str, PyEnum):
    PARTICIPANT = "participant"
    VIEWER = "viewer"
    ADMIN = "admin"


# ──────────────────────────────────────────────────────────────
# Videos
# ──────────────────────────────────────────────────────────────
class VideoAccess(str, PyEnum):
    """Who may read a video."""
    PRIVATE = "private"
    WORKSPACE = "workspace"
    PUBLIC = "public"
    CUSTOM = "custom"


class VideoStatus(str, PyEnum):
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


# ──────────────────────────────────────────────────────────────
# Access evaluation
# ──────────────────────────────────────────────────────────────
class Action(str, PyEnum):
    """Actions the access evaluator decides on."""
    READ = "read"
    WRITE = "write"
    RENAME = "rename"
    DELETE = "delete"
    CHANGE_SETTINGS = "change-settings"
    ADD_MEMBER = "add-member"
    REMOVE_MEMBER = "remove-member"
    CHANGE_MEMBER_ROLE = "change-member-role"
    MANAGE = "manage"


class DenyReason(str, PyEnum):
    NOT_A_MEMBER = "not-a-member"
    INSUFFICIENT_ROLE = "insufficient-role"
    NOT_OWNER = "not-owner"
    NOT_IN_ALLOW_LIST = "not-in-allow-list"
    CLIENT_GROUP_MISMATCH = "client-group-mismatch"
    NOT_ASSIGNED = "not-assigned"
    ANONYMOUS = "anonymous"
    CANNOT_MODIFY_OWNER = "cannot-modify-owner"


class DeliveryMode(str, PyEnum):
    STREAM = "stream"
    SIGNED = "signed"


__all__ = [
    "enum_values",
    "GlobalRole",
    "UserStatus",
    "WorkspaceRole",
    "ClientGroupStatus",
    "CampaignStatus",
    "CampaignRole",
    "VideoAccess",
    "VideoStatus",
    "Action",
    "DenyReason",
    "DeliveryMode",
]
