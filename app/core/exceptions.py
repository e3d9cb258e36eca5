# app/core/exceptions.py
from __future__ import annotations

"""
StreamGate — Application Exceptions
===================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach a stable machine-readable `kind` plus structured metadata, and
integrate cleanly with the problem+json shape from `app.core.exception_handlers`.

Taxonomy
--------
- `AuthError`              401  kind=auth
- `EntitlementError`       403  kind=entitlement
- `ConcurrencyLimitError`  403  kind=device-limit | stream-limit | contention
- `NotFoundError`          404  kind=not-found
- `ValidationError`        400  kind=validation
- `StorageUnavailableError` 503 kind=storage-unavailable

Apart from storage outages, none of these are retried by callers: limit and
entitlement failures are policy decisions, not transient faults.

Usage
-----
    raise EntitlementError()
    raise ConcurrencyLimitError(ConcurrencyLimitError.STREAM_LIMIT)
    raise NotFoundError("Movie not found")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "AuthError",
    "EntitlementError",
    "ConcurrencyLimitError",
    "NotFoundError",
    "ValidationError",
    "StorageUnavailableError",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with a stable `kind`.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    kind : str
        Stable machine-readable error kind.
    details : dict | list | str | None
        Machine-readable details (limits, ids).
    headers : dict | None
        Optional headers (e.g., `{"WWW-Authenticate": "Bearer"}`).
    """

    kind: str = "error"

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        kind: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message: str = message
        self.kind = kind or self.kind
        self.details: Optional[Any] = details

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self) -> Dict[str, Any]:
        """Return the error-specific members of the problem+json body."""
        body: Dict[str, Any] = {"kind": self.kind}
        if self.details is not None:
            body["details"] = self.details
        return body


# ──────────────────────────────────────────────────────────────
# 🔑 Caller identity
# ──────────────────────────────────────────────────────────────
class AuthError(AppException):
    """Missing/invalid caller identity or an invalid streaming credential."""

    kind = "auth"

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


# ──────────────────────────────────────────────────────────────
# 🎟️ Entitlement & concurrency
# ──────────────────────────────────────────────────────────────
class EntitlementError(AppException):
    """No active, unexpired subscription for the account."""

    kind = "entitlement"

    def __init__(self, message: str = "Active subscription required") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, message=message)


class ConcurrencyLimitError(AppException):
    """Device or stream cap reached (or admission lost to contention)."""

    DEVICE_LIMIT = "device-limit"
    STREAM_LIMIT = "stream-limit"
    CONTENTION = "contention"

    _MESSAGES = {
        DEVICE_LIMIT: "Device limit exceeded. Please remove a device first.",
        STREAM_LIMIT: "Maximum concurrent streams reached",
        CONTENTION: "Too many simultaneous changes to this account; try again",
    }

    def __init__(self, reason: str, *, limit: Optional[int] = None) -> None:
        if reason not in self._MESSAGES:
            raise ValueError(f"unknown concurrency limit reason: {reason!r}")
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            message=self._MESSAGES[reason],
            kind=reason,
            details={"limit": limit} if limit is not None else None,
        )


# ──────────────────────────────────────────────────────────────
# 🔎 Lookup & input
# ──────────────────────────────────────────────────────────────
class NotFoundError(AppException):
    """Content missing/inactive, or a quality unavailable in legacy storage."""

    kind = "not-found"

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message)


class StorageUnavailableError(AppException):
    """Object storage could not sign a URL for a key that passed validation."""

    kind = "storage-unavailable"

    def __init__(self, message: str = "Media storage is temporarily unavailable") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, message=message)


class ValidationError(AppException):
    """Malformed request parameters."""

    kind = "validation"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message, details=details)
