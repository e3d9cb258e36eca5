# app/core/security.py
from __future__ import annotations

"""
StreamGate — Caller identity
============================
Accounts authenticate elsewhere; this service only trusts the Bearer access
token they present. Decoding is delegated to `app.core.jwt`.

- `create_access_token` mints tokens in the shape the identity service issues
  (used by local tooling and tests).
- `get_current_account_id` is the FastAPI dependency every router uses.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4
import logging

from fastapi import Request
from jose import jwt

from app.core.config import settings
from app.core.exceptions import AuthError
from app.core.jwt import decode_access_token, get_bearer_token

logger = logging.getLogger(__name__)


# ───────────────────────────────────────────────
# 🪪 JWT — Access Token Generation
# ───────────────────────────────────────────────
def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=30))
    payload: Dict[str, Any] = {
        "sub": str(account_id),
        "exp": expire,
        "iat": now,
        "nbf": now,
        "jti": str(uuid4()),
        "token_type": "access",
    }
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


# ───────────────────────────────────────────────
# 👤 Dependency — Current Account
# ───────────────────────────────────────────────
async def get_current_account_id(request: Request) -> str:
    """Authenticate the caller from the presented **access** token.

    Stores the account id on `request.state.account_id` so the rate limiter
    keys per account.
    """
    payload = decode_access_token(get_bearer_token(request))
    account_id = str(payload["sub"]).strip()
    if not account_id:
        raise AuthError("Token missing subject.")
    request.state.account_id = account_id
    logger.debug("[Auth] Authenticated account=%s", account_id)
    return account_id


__all__ = ["create_access_token", "get_current_account_id"]
