from __future__ import annotations

"""
Clipvault · HTTP Utilities
==========================

Shared helpers for API routers:

- Client IP resolution (proxy-aware, opt-in)
- Viewer fingerprint for analytics payloads (hashed, never the raw IP)
- No-store JSON helper
"""

import hashlib
import ipaddress
import os
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

__all__ = ["get_client_ip", "hashed_client_ip", "json_no_store"]


# ─────────────────────────────────────────────────────────────────────────────
# 🌐 Client IP Resolution (proxy/CDN aware, opt-in)
# ─────────────────────────────────────────────────────────────────────────────

def _parse_ip(value: Optional[str]) -> Optional[str]:
    """Parse an IP (v4/v6) possibly containing zone IDs or ports; return None if invalid."""
    if not value:
        return None
    value = value.split("%", 1)[0].strip()
    if value.startswith("["):
        host = value.split("]", 1)[0].lstrip("[")
    else:
        host = value.split(":")[0] if value.count(":") == 1 else value
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return None
    return host


def get_client_ip(request: Request) -> str:
    """Best-guess client IP for logging and rate limiting.

    Uses the socket peer unless ``TRUST_FORWARD_HEADERS=1``, in which case
    ``X-Real-Ip`` and then the left-most ``X-Forwarded-For`` hop are consulted.
    """
    peer = request.client.host if request.client and request.client.host else None
    peer_ip = _parse_ip(peer)

    if os.environ.get("TRUST_FORWARD_HEADERS") not in {"1", "true", "True"}:
        return peer_ip or "unknown"

    ip = _parse_ip(request.headers.get("x-real-ip"))
    if ip:
        return ip
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = _parse_ip(xff.split(",")[0].strip())
        if ip:
            return ip
    return peer_ip or "unknown"


def hashed_client_ip(request: Request) -> str:
    """Short stable digest of the client IP (stored in analytics viewer info)."""
    return hashlib.sha256(get_client_ip(request).encode("utf-8")).hexdigest()[:16]


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 No-store JSON helper (sensitive responses)
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(payload: Any, status_code: int = 200) -> JSONResponse:
    """Return a JSON response with strict `no-store` caching."""
    resp = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp
