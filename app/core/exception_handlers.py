from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

FastAPI integrates these via app/main.py. All HTTP errors are rendered as
application/problem+json with a stable schema; application errors add their
machine-readable `kind`.
"""

import logging
from typing import Any, Dict

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AppException

logger = logging.getLogger(__name__)

_KIND_BY_STATUS = {
    400: "validation",
    401: "auth",
    403: "forbidden",
    404: "not-found",
    405: "method-not-allowed",
    429: "rate-limited",
}


def _problem(title: str, detail: str, status_code: int, request: Request, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url),
        "request_id": getattr(request.state, "request_id", None) or "N/A",
    }
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body, media_type="application/problem+json")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if isinstance(exc, AppException):
        extra = exc.to_problem()
    else:
        extra = {"kind": _KIND_BY_STATUS.get(exc.status_code, "error")}
    response = _problem(title, detail, exc.status_code, request, **extra)
    for k, v in (getattr(exc, "headers", None) or {}).items():
        response.headers[k] = v
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return _problem(
        "Validation error",
        "Malformed request parameters",
        status.HTTP_400_BAD_REQUEST,
        request,
        kind="validation",
        errors=errors,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    extra: Dict[str, Any] = {"kind": "internal"}
    if settings.EXPOSE_ERROR_DETAILS:
        extra["debug"] = f"{exc.__class__.__name__}: {exc}"
    return _problem(
        "Internal Server Error",
        "An unexpected error occurred.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        request,
        **extra,
    )


__all__ = [
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
