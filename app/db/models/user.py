from __future__ import annotations

"""
👤 Clipvault · User (accounts & tenancy)
=======================================

Account entity carrying the **global role** and the (at most one) client
group the account belongs to. Credentials live with the external identity
provider; this table is what the access evaluator needs.

Design highlights
-----------------
• Lowercased, unique email; unique username.
• `client_group_id` is NULL for super-admins and unaffiliated users.
• Workspace memberships live in `workspace_members`.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, String, Uuid

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin
from app.schemas.enums import GlobalRole, UserStatus, enum_values


class User(UUIDPKMixin, TimestampMixin, Base):
    """Account record with global role, client group and lifecycle status."""

    __tablename__ = "users"

    username = Column(String(64), nullable=False, unique=True)
    email = Column(String(320), nullable=False, unique=True, doc="Stored lowercased")

    role = Column(
        Enum(GlobalRole, name="global_role", native_enum=False, values_callable=enum_values, length=32),
        nullable=False,
        default=GlobalRole.USER,
    )
    client_group_id = Column(
        Uuid,
        ForeignKey("client_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status = Column(
        Enum(UserStatus, name="user_status", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("length(trim(email)) > 0", name="email_not_blank"),
    )
