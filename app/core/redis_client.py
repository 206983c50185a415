# app/core/redis_client.py
from __future__ import annotations

"""
Clipvault · Redis Client (Async)
================================
Central, **single source of truth** for Redis access in the app.

What this provides
------------------
• Resilient connect with retries & backoff
• Pooled async client with health checks
• Async **distributed lock** (`SET NX EX` spin-lock, owner-only release)

Public API (imported as `redis_wrapper`)
----------------------------------------
- await redis_wrapper.connect() / await redis_wrapper.close() / await redis_wrapper.is_connected()
- redis_wrapper.client
- async with redis_wrapper.lock(name, timeout=10, blocking_timeout=3): ...

Design notes
------------
• Folder moves and cascading deletes are serialized per workspace with `lock()`.
• **Strict** on locks: raise `TimeoutError` if not acquired within `blocking_timeout`.
"""

import asyncio
import logging
import os
import random
import time
from contextlib import asynccontextmanager
from typing import Any, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Tunables (env-aware sensible defaults)
# ─────────────────────────────────────────────────────────────────────────────
MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "5"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))  # seconds
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
POOL_MAX_CONNECTIONS = int(os.getenv("REDIS_POOL_MAX_CONNECTIONS", "64"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "clipvault-api")


class _RedisProto(Protocol):
    async def ping(self) -> Any: ...
    async def set(self, name: str, value: Any, *, ex: Optional[int] = None, nx: Optional[bool] = None) -> Any: ...
    async def get(self, name: str) -> Any: ...
    async def delete(self, *names: Any) -> Any: ...
    async def close(self) -> Any: ...


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────
class RedisClient:
    """Singleton Redis connection manager (asyncio)."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[_RedisProto] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """
        Establish a connection with retries.

        Steps
        -----
        - **[Step 1]** Reuse a healthy client when possible.
        - **[Step 2]** Attempt connection with backoff and jitter.
        """
        # ── [Step 1] Reuse an existing healthy client ───────────────────────
        if self._client:
            try:
                await self._client.ping()
                return
            except RedisError:
                self._client = None  # stale client → reconnect

        last_err: Optional[Exception] = None

        # ── [Step 2] Retry with backoff ─────────────────────────────────────
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                self._client = redis.Redis.from_url(
                    self.redis_url.strip(),
                    decode_responses=True,
                    health_check_interval=HEALTH_CHECK_INTERVAL,
                    socket_keepalive=True,
                    socket_timeout=SOCKET_TIMEOUT,
                    retry_on_timeout=True,
                    max_connections=POOL_MAX_CONNECTIONS,
                    client_name=CLIENT_NAME,
                )
                await self._client.ping()
                logger.info("✅ Connected to Redis")
                return
            except (RedisError, OSError) as e:
                last_err = e
                delay = self._backoff(attempt)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %r (retrying in %.2fs)",
                    attempt, MAX_RETRIES, e, delay,
                )
                await asyncio.sleep(delay)

        logger.error("❌ Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        """Gracefully close the connection and reset local state."""
        if not self._client:
            return
        try:
            await self._client.close()
            logger.info("🛑 Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds (healthy connection)."""
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> _RedisProto:
        """Low-level client; ensure `connect()` was called at startup."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    # ── lock ─────────────────────────────────────────────────────────────────
    @asynccontextmanager
    async def lock(
        self,
        name: str,
        *,
        timeout: int = 10,
        blocking_timeout: int = 3,
        sleep: float = 0.05,
    ):
        """
        Async distributed lock (``SET name token NX EX timeout`` spin-lock).

        Failure semantics
        -----------------
        - If Redis is **not connected**, raise `RuntimeError`.
        - If not acquired within `blocking_timeout`, raise built-in `TimeoutError`.
        - Only the owner token releases the key.

        Steps
        -----
        - **[Step 1]** Validate connectivity.
        - **[Step 2]** Spin on `SET NX` until acquired or the deadline passes.
        - **[Step 3]** Owner-only release on exit.
        """
        # ── [Step 1] Validate connectivity ─────────────────────────────────
        if not self._client:
            raise RuntimeError("Redis not connected")
        rc = self._client

        # ── [Step 2] Acquire ───────────────────────────────────────────────
        token = f"{time.time_ns()}-{os.getpid()}-{random.randint(0, 1_000_000)}"
        deadline = time.monotonic() + max(0.0, float(blocking_timeout))
        acquired = False
        while True:
            if await rc.set(name, token, ex=int(timeout), nx=True):
                acquired = True
                break
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(sleep)
        if not acquired:
            raise TimeoutError(f"Failed to acquire lock: {name}")

        try:
            yield  # critical section
        finally:
            # ── [Step 3] Owner-only release ────────────────────────────────
            try:
                val = await rc.get(name)
                if isinstance(val, (bytes, bytearray)):
                    val = val.decode("utf-8", errors="ignore")
                if val == token:
                    await rc.delete(name)
            except RedisError:
                logger.warning("lock release failed name=%s (expires in %ss)", name, timeout)

    # ── internals ───────────────────────────────────────────────────────────
    @staticmethod
    def _backoff(attempt: int) -> float:
        # Exponential backoff with jitter (cap at 3s)
        return min(3.0, BASE_DELAY * (2 ** (attempt - 1))) + random.uniform(0, 0.25)


# ─────────────────────────────────────────────────────────────────────────────
# Singleton instance
# ─────────────────────────────────────────────────────────────────────────────
redis_wrapper = RedisClient(settings.REDIS_URL)
