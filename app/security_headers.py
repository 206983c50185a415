# app/security_headers.py
from __future__ import annotations

"""
# Clipvault · Security Headers & CORS

- **Headers**: X-Content-Type-Options, X-Frame-Options, Referrer-Policy and a
  Cross-Origin-Resource-Policy that lets allow-listed players embed media.
- **CORS installer**: strict allow-list from settings (never ``*``).
- **Cache helper**: `set_sensitive_cache()` for responses that must not be
  stored (signed references, share-link metadata).

## Quick start
    from app.security_headers import install_security, configure_cors

    app = FastAPI()
    install_security(app)
    configure_cors(app)
"""

import os
from typing import Iterable, List, Optional, Tuple

from fastapi import Response
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.core.config import settings

_BASE_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("x-content-type-options", "nosniff"),
    ("x-frame-options", "DENY"),
    ("referrer-policy", os.getenv("REFERRER_POLICY", "strict-origin-when-cross-origin")),
    ("cross-origin-resource-policy", os.getenv("CROSS_ORIGIN_RESOURCE_POLICY", "cross-origin")),
)


class SecurityHeadersMiddleware:
    """Pure ASGI middleware adding baseline security headers (never overriding route headers)."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        async def _send(message):
            if message.get("type") == "http.response.start":
                raw: List[Tuple[bytes, bytes]] = list(message.get("headers", []))
                present = {k.lower() for k, _ in raw}
                for name, value in _BASE_HEADERS:
                    key = name.encode("latin-1")
                    if key not in present:
                        raw.append((key, value.encode("latin-1")))
                message["headers"] = raw
            await send(message)

        await self.app(scope, receive, _send)


def set_sensitive_cache(response: Response, *, seconds: int = 0) -> None:
    """
    Mark a response as sensitive for caching.

    `seconds > 0` enables a short **private** cache with
    `Vary: Authorization`; otherwise ``no-store``.
    """
    if seconds <= 0:
        response.headers["Cache-Control"] = "no-store"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return
    response.headers["Cache-Control"] = f"private, max-age={seconds}"
    vary = {v.strip() for v in response.headers.get("Vary", "").split(",") if v.strip()}
    response.headers["Vary"] = ", ".join(sorted(vary | {"Authorization"}))


def configure_cors(
    app,
    *,
    allow_credentials: bool = True,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install strict CORS based on `settings.frontend_origins_list`."""
    allow_methods = allow_methods or ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]
    allow_headers = allow_headers or ["Authorization", "Content-Type", "Range", "X-Request-ID"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins_list,
        allow_credentials=allow_credentials,
        allow_methods=list(allow_methods),
        allow_headers=list(allow_headers),
        expose_headers=["Accept-Ranges", "Content-Range", "Content-Length", "Retry-After", "X-Request-ID"],
        max_age=3600,
    )


def install_security(app) -> None:
    app.add_middleware(SecurityHeadersMiddleware)


__all__ = [
    "SecurityHeadersMiddleware",
    "install_security",
    "configure_cors",
    "set_sensitive_cache",
]
