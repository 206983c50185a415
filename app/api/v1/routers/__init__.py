"""
🧭✨ Clipvault • API v1 Router Aggregator
=========================================

Exports both the **combined `router`** (ready to include) and each **individual
sub-router** so callers can mount them as needed.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Or with the factory:

    from app.api.v1.routers import build_v1_router
    app.include_router(build_v1_router(), prefix="/api/v1")

Security notes
--------------
- 🔐 This layer is a pure aggregator; **authorization & rate limits live in child routers**.
"""

from fastapi import APIRouter

from .campaigns import router as campaigns_router
from .client_groups import router as client_groups_router
from .folders import router as folders_router
from .share import router as share_router
from .users import router as users_router
from .videos import router as videos_router
from .workspaces import router as workspaces_router


def build_v1_router() -> APIRouter:
    """Compose the API v1 surface into a single `APIRouter`."""
    r = APIRouter()
    r.include_router(videos_router)
    r.include_router(folders_router)
    r.include_router(workspaces_router)
    r.include_router(share_router)
    r.include_router(campaigns_router)
    r.include_router(client_groups_router)
    r.include_router(users_router)
    return r


router = build_v1_router()


__all__ = [
    "router",
    "build_v1_router",
    "videos_router",
    "folders_router",
    "workspaces_router",
    "share_router",
    "campaigns_router",
    "client_groups_router",
    "users_router",
]
