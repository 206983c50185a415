from __future__ import annotations

"""
🏢 Clipvault · ClientGroup (tenant organizations)

Client-admins and users reference their group through `users.client_group_id`.
"""

from sqlalchemy import Column, Enum, String, Text, Uuid

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin
from app.schemas.enums import ClientGroupStatus, enum_values


class ClientGroup(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "client_groups"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(ClientGroupStatus, name="client_group_status", native_enum=False, values_callable=enum_values, length=16),
        nullable=False,
        default=ClientGroupStatus.ACTIVE,
    )
    # Plain reference; users → client_groups already carries the FK edge.
    created_by = Column(Uuid, nullable=True)
