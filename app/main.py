# app/main.py
from __future__ import annotations

"""
# Clipvault API · Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the Clipvault video-hosting
backend.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**:
  1) request id → 2) security headers → 3) CORS → 4) gzip → 5) rate limits.
- Centralized problem+json exception handling.
- Graceful local/dev behavior (Redis is best-effort at startup).

## Probes
- `/healthz`: liveness (process up).
- `/readyz`: readiness (DB + Redis checks).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse

from app.api.v1.routers import router as api_v1_router
from app.core.config import settings
from app.core.exception_handlers import (
    app_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions import AppException
from app.core.limiter import install_rate_limiter
from app.core.logger import configure_logging
from app.core.redis_client import redis_wrapper
from app.db.session import async_engine, db_healthcheck
from app.middleware.request_id import RequestIDMiddleware
from app.security_headers import configure_cors, install_security

logger = logging.getLogger("app.main")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifecycle manager.

    Startup:
        - Configure loguru sinks.
        - Best-effort connect to Redis (folder locks fail with 503 until it is up).

    Shutdown:
        - Dispose the DB async engine.
        - Close the Redis connection.
    """
    configure_logging()
    logger.info("✅ %s starting up (env=%s)", settings.PROJECT_NAME, settings.ENV)

    try:
        await redis_wrapper.connect()
    except RuntimeError:
        logger.exception("Redis connect failed (continuing in degraded mode)")

    try:
        yield
    finally:
        await async_engine.dispose()
        logger.info("🛑 Database engine disposed")
        await redis_wrapper.close()
        logger.info("🛑 %s shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: fully wired application with middleware, exception handlers,
        routers, and health/readiness endpoints.
    """
    docs_url = "/docs" if settings.ENABLE_DOCS else None
    redoc_url = "/redoc" if settings.ENABLE_DOCS else None
    openapi_url = "/openapi.json" if settings.ENABLE_DOCS else None

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )

    # ── Middlewares (order matters) ─────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    install_security(app)
    configure_cors(app)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    install_rate_limiter(app)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── Exception handlers (problem+json) ───────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)                    # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)         # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)                  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)   # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)                    # type: ignore[arg-type]

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe; no external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        """Readiness probe: DB `SELECT 1` and Redis `PING`."""
        db_ok = await db_healthcheck()
        redis_ok = await redis_wrapper.is_connected()
        ready = db_ok and redis_ok
        return JSONResponse(
            {"ready": ready, "checks": {"db": db_ok, "redis": redis_ok}},
            status_code=200 if ready else 503,
        )

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse({"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION})

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
