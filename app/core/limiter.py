from __future__ import annotations

"""
Clipvault · HTTP Rate Limiting (SlowAPI)
========================================

Highlights
----------
- **User/IP aware** keying: per-user when identity resolution sets
  `request.state.user_id`, else per-client-IP (XFF/X-Real-IP/client.host).
- **Exemptions**: health/docs/metrics paths, configurable trusted IPs.
- **Test/CI friendly**: `RATE_LIMIT_TEST_BYPASS` disables limits when truthy.
- **Backends**: Redis via `RATELIMIT_STORAGE_URI` or in-memory fallback.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "300/minute"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/metrics,/docs,/openapi.json"
RATE_LIMIT_TRUSTED_IPS       default: "" (comma separated)
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)

Usage
-----
    @router.post("/{video_id}/analytics/view")
    @rate_limit("120/minute")
    async def record_view(request: Request, response: Response, ...): ...

Decorated endpoints must accept ``request: Request`` and ``response: Response``
so SlowAPI can key the call and inject ``X-RateLimit-*`` headers.
"""

import os
from typing import Callable, Optional, List, Set

from dotenv import load_dotenv
from loguru import logger
from starlette.requests import Request
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

# ──────────────────────────────────────────────────────────────
# ⚙️ Environment & defaults
# ──────────────────────────────────────────────────────────────
load_dotenv()

DEFAULT_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "300/minute").strip()
STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip()

SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv(
        "RATE_LIMIT_SKIP_PATHS",
        "/healthz,/readyz,/metrics,/docs,/openapi.json",
    ).split(",")
    if p.strip()
]

TRUSTED_IPS: Set[str] = {ip.strip() for ip in os.getenv("RATE_LIMIT_TRUSTED_IPS", "").split(",") if ip.strip()}


def _truthy(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    """
    Best-effort client IP:
    1) X-Forwarded-For (first hop)
    2) X-Real-IP
    3) ASGI client.host
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_user_rate_limit_key(request: Request) -> str:
    """Build a limiter key: ``user:<id>`` when known, else ``ip:<addr>``."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{_client_ip(request)}"


def should_exempt_request(request: Optional[Request]) -> bool:
    """
    Exempt a request when:
      - global switch is off, or test bypass is enabled,
      - path is in SKIP_PATHS,
      - client IP is trusted.
    """
    # Env flags are re-read per request so tests can toggle them.
    if not _truthy("RATE_LIMIT_ENABLED", "true") or _truthy("RATE_LIMIT_TEST_BYPASS"):
        return True
    if request is None:
        return False
    path = request.url.path
    if any(path == p or path.startswith(p) for p in SKIP_PATHS):
        return True
    return _client_ip(request) in TRUSTED_IPS


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance (Redis / memory)
# ──────────────────────────────────────────────────────────────
def _build_default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


limiter = Limiter(
    key_func=get_user_rate_limit_key,
    default_limits=_build_default_limits(),
    headers_enabled=True,
    storage_uri=STORAGE_URI or "memory://",
)


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def _exempt_when(request: Optional[Request] = None) -> bool:
    """SlowAPI may call this with or without the request."""
    req = request
    if req is None:
        req = limiter._request_context.get()  # type: ignore[attr-defined]
    return should_exempt_request(req)


def rate_limit(*limits: str) -> Callable:
    """
    Apply per-route limits with Clipvault exemptions.

    Examples
    --------
    @rate_limit("10/minute")
    @rate_limit("5/second", "100/minute")
    """
    selected = list(limits) if limits else _build_default_limits()
    decorators = [limiter.limit(limit_value, exempt_when=_exempt_when) for limit_value in selected]

    def _apply(fn: Callable) -> Callable:
        for deco in reversed(decorators):
            fn = deco(fn)
        return fn

    return _apply


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach SlowAPI middleware unless `RATE_LIMIT_ENABLED` is false."""
    if not _truthy("RATE_LIMIT_ENABLED", "true"):
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    logger.info("✅ SlowAPI middleware installed | default={} | storage={}", _build_default_limits(), STORAGE_URI or "memory://")
