from __future__ import annotations

"""
Dialect-aware ``INSERT … ON CONFLICT`` builder.

PostgreSQL and SQLite both support ``ON CONFLICT`` with the same SQLAlchemy
API (`on_conflict_do_update` / `on_conflict_do_nothing`); only the import
differs. The dialect is read from the session's bind.
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model: Any):
    """Return a dialect-specific ``insert(model)`` supporting ``on_conflict_*``."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"upsert not supported for dialect {dialect!r}")


__all__ = ["insert_for"]
