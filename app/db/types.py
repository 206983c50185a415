from __future__ import annotations

"""Portable column types (JSONB on PostgreSQL, JSON elsewhere)."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

FlexJSON = JSONB().with_variant(JSON(), "sqlite")

__all__ = ["FlexJSON"]
