# app/core/exceptions.py
from __future__ import annotations

"""
Clipvault · Application Exceptions
==================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and integrate cleanly with the
problem+json shape from `app.core.exception_handlers`.

Taxonomy
--------
- ``NotFoundError``             404  resource or backing object missing
- ``AccessDeniedError``         403  evaluator denied; reason is logged, never rendered
- ``InvalidStateError``         409  structural violation (cycle, bad parent, owner role)
- ``ConflictError``             409  concurrent modification / duplicate
- ``RangeNotSatisfiableError``  416  byte range outside the object
- ``UpstreamFailureError``      503  storage failure, safe to retry

Usage
-----
    raise InvalidStateError("cycle-detected")
    raise AccessDeniedError(reason="not-a-member")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "NotFoundError",
    "AccessDeniedError",
    "InvalidStateError",
    "ConflictError",
    "RangeNotSatisfiableError",
    "UpstreamFailureError",
    "InvalidTokenException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : str | int
        Machine-readable code. Defaults to `status_code`.
    details : Any
        Machine-readable details surfaced to clients.
    extra : dict | None
        Additional non-sensitive metadata merged into the body.
    headers : dict | None
        Optional headers (e.g., `Content-Range` for 416).
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[Any] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code if code is not None else status_code
        self.message: str = message
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, fallback_request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict matching our problem-like JSON shape."""
        body: Dict[str, Any] = {
            "error": True,
            "message": self.message,
            "code": self.code,
            "request_id": fallback_request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "password", "secret"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


# ──────────────────────────────────────────────────────────────
# 🔎 Lookup / state errors
# ──────────────────────────────────────────────────────────────
class NotFoundError(AppException):
    """Resource (row or stored object) does not exist."""

    def __init__(self, what: str = "Resource", *, details: Optional[Any] = None) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message=f"{what} not found",
            code="not-found",
            details=details,
        )


class InvalidStateError(AppException):
    """A requested change would break a structural invariant."""

    def __init__(self, reason: str, *, message: Optional[str] = None) -> None:
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            message=message or reason.replace("-", " ").capitalize(),
            code=reason,
        )


class ConflictError(AppException):
    """Concurrent modification or duplicate entry."""

    def __init__(self, message: str = "Conflict", *, code: str = "conflict") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, message=message, code=code)


# ──────────────────────────────────────────────────────────────
# 🔐 Authorization
# ──────────────────────────────────────────────────────────────
class AccessDeniedError(AppException):
    """Evaluator denied the action.

    The reason code stays on the exception for logs and tests; the rendered
    body is always the generic message so membership is never disclosed.
    """

    def __init__(self, reason: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message="Access denied",
            code="access-denied",
            extra=extra,
        )


class InvalidTokenException(AppException):
    """Raised for invalid or expired tokens (401 by default)."""

    def __init__(
        self,
        *,
        detail: str = "Invalid or expired token",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=detail,
            code="invalid-token",
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )


# ──────────────────────────────────────────────────────────────
# 📼 Delivery / storage
# ──────────────────────────────────────────────────────────────
class RangeNotSatisfiableError(AppException):
    """Requested byte range lies outside the object."""

    def __init__(self, size: int) -> None:
        self.size = size
        super().__init__(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            message="Requested range not satisfiable",
            code="range-not-satisfiable",
            headers={"Content-Range": f"bytes */{size}"},
        )


class UpstreamFailureError(AppException):
    """Object storage or another collaborator failed; the caller may retry."""

    def __init__(self, message: str = "Upstream storage failure") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            message=message,
            code="upstream-failure",
            extra={"retryable": True},
            headers={"Retry-After": "1"},
        )
