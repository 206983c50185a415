# tests/conftest.py
"""
Global test bootstrap
- Points the app at a throwaway SQLite database before anything imports it
- Mounts a mock Redis client into app.core.redis_client
- Makes SlowAPI rate-limiting test-friendly (bypass by default)
- Exposes a redis_client fixture + an opt-in ratelimit_on fixture
"""

from __future__ import annotations

import os

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the app so module-level reads see it)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("MEDIA_DELIVERY_MODE", "stream")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("DEFAULT_RATE_LIMIT", "")

# ──────────────────────────────────────────────────────────────────────────────
# 🧪 Install mock Redis globally before any tests run
# ──────────────────────────────────────────────────────────────────────────────
from app.core.redis_client import redis_wrapper  # noqa: E402
from tests.fixtures.mocks.redis import MockRedisClient  # noqa: E402

redis_wrapper._client = MockRedisClient()

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Pull in the rest of the fixtures (db, app, storage, accounts)
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.db import *        # noqa: F401,F403,E402
from tests.fixtures.storage import *   # noqa: F401,F403,E402
from tests.fixtures.app import *       # noqa: F401,F403,E402
from tests.fixtures.users import *     # noqa: F401,F403,E402


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Redis fixture (function-scoped), cleared before and after each test
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
async def redis_client():
    """Use this to inspect or seed Redis directly in a test."""
    client = redis_wrapper.client
    await client.flushall()
    yield client
    await client.flushall()


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Opt-in fixture to actually enforce rate limits in a specific test
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def ratelimit_on(monkeypatch):
    """Enforce decorator limits for tests that assert 429s."""
    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "0")
    yield
    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "1")
