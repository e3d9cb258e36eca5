# app/core/jwt.py
from __future__ import annotations

"""
StreamGate — JWT helpers
========================
- `decode_token` with optional issuer/audience enforcement
- Case-insensitive Bearer token extraction
- Thin `decode_access_token()` wrapper (access-only)

Notes
-----
- Access-token *creation* lives in `app.core.security`; streaming credentials
  are minted and verified by `app.services.credentials` with their own secret.
- python-jose checks `exp`/`nbf`/`iat`; no leeway is applied.
"""

from typing import Any, Dict, Optional, Sequence
import logging

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


def decode_token(
    token: str,
    *,
    key: Optional[str] = None,
    expected_types: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """Decode and validate a JWT, raising `AuthError` on any failure.

    Checks signature and standard claims, enforces issuer/audience when
    configured, requires a subject, and optionally checks `token_type`.
    """
    issuer = settings.JWT_ISSUER or None
    audience = settings.JWT_AUDIENCE or None
    try:
        payload = jwt.decode(
            token,
            key or settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": bool(audience)},
            audience=audience,
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise AuthError("Token has expired.")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise AuthError("Invalid token.")

    if not payload.get("sub"):
        raise AuthError("Token missing subject.")

    if expected_types is not None and payload.get("token_type") not in set(expected_types):
        logger.warning("Token type mismatch: got %r", payload.get("token_type"))
        raise AuthError("Invalid token type.")

    return payload


def get_bearer_token(request: Request) -> str:
    """Extract a Bearer token from the `Authorization` header (case-insensitive)."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthError("Missing Authorization header.")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthError("Invalid Authorization scheme.")
    return parts[1].strip()


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode an account access token (`token_type == "access"`)."""
    return decode_token(token, expected_types=["access"])


__all__ = ["decode_token", "decode_access_token", "get_bearer_token"]
