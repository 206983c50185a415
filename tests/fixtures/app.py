# tests/fixtures/app.py

"""
🧩 App Fixture:
- Builds the production FastAPI app via `create_app()`
- Injects the test DB session and a per-test media store
- Returns HTTP client fixture for integration tests
"""

from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_async_db, get_session_factory
from app.main import create_app
from app.services.storage import get_storage
from tests.fixtures.db import get_override_get_db


@pytest.fixture()
async def app(db_session: AsyncSession, session_factory, media_storage) -> FastAPI:
    """
    🧪 The real application with test-specific DB session and storage.
    Background work (view counting) opens its sessions on the same test DB.
    """
    app = create_app()
    app.dependency_overrides[get_async_db] = get_override_get_db(db_session)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage] = lambda: media_storage
    return app


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    🌐 Provides an HTTP client for sending requests to the test app.
    Media responses are requested uncompressed so byte headers stay intact.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Accept-Encoding": "identity"},
    ) as client:
        yield client
