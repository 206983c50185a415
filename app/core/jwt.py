from __future__ import annotations

"""
🔐 JWT verification helpers
==========================

Tokens are issued by the external identity provider; this service only
verifies them.

Security checks
---------------
1) Signature and standard claims (exp/nbf/iat) via python-jose
2) Audience when ``JWT_AUDIENCE`` is configured
3) A subject (``sub``) must be present
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# 🔓 Decode
# ─────────────────────────────────────────────────────────────
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a bearer JWT; raises `InvalidTokenException` (401)."""
    audience = settings.JWT_AUDIENCE
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            audience=audience if audience else None,
            options={"verify_aud": bool(audience)},
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException(detail="Token has expired")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenException(detail="Invalid token")

    if not payload.get("sub"):
        logger.warning("Missing sub in token payload.")
        raise InvalidTokenException(detail="Token missing subject")
    return payload


# ─────────────────────────────────────────────────────────────
# 📥 Bearer extraction
# ─────────────────────────────────────────────────────────────
def get_bearer_token(request: Request, *, required: bool = True) -> Optional[str]:
    """Extract a Bearer token from the `Authorization` header (case-insensitive).

    With ``required=False`` a missing header yields ``None``; a malformed one
    is still rejected.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        if not required:
            return None
        raise InvalidTokenException(detail="Missing Authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        logger.warning("Malformed Authorization header")
        raise InvalidTokenException(detail="Invalid Authorization scheme")
    return parts[1].strip()


__all__ = ["decode_token", "get_bearer_token"]
