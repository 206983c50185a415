from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

Wired in app/main.py. All HTTP errors are rendered as application/problem+json
with a stable schema. ``AppException`` subclasses additionally carry a
machine-readable ``code`` and any non-sensitive extras (``retryable``,
``requireEmail``). Request validation failures are 400s.
"""

import logging
from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AccessDeniedError, AppException

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "N/A"


def _problem(title: str, detail: str, status_code: int, request: Request, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url),
        "request_id": _request_id(request),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, media_type="application/problem+json")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:  # type: ignore
    if isinstance(exc, AccessDeniedError):
        logger.info("access denied path=%s reason=%s", request.url.path, exc.reason)
    body = exc.to_problem(fallback_request_id=_request_id(request))
    extras = {k: v for k, v in body.items() if k not in {"error", "message", "request_id"}}
    title = exc.__class__.__name__.replace("Error", "").replace("Exception", "").strip() or "Error"
    response = _problem(title, exc.message, exc.status_code, request, **extras)
    for k, v in (exc.headers or {}).items():
        response.headers[k] = v
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response = _problem(title, detail, exc.status_code, request)
    for k, v in (getattr(exc, "headers", None) or {}).items():
        response.headers[k] = v
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    detail = "Validation error"
    return _problem(
        detail,
        detail,
        status.HTTP_400_BAD_REQUEST,
        request,
        errors=jsonable_encoder(exc.errors()),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    logger.exception("unhandled error path=%s", request.url.path)
    return _problem("Internal Server Error", "An unexpected error occurred.", status.HTTP_500_INTERNAL_SERVER_ERROR, request)


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
