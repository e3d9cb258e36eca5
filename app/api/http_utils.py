from __future__ import annotations

"""
StreamGate · HTTP Utilities
===========================

Shared helpers for API routers:

- Client IP resolution (proxy-aware, opt-in)
- Salted hashing for PII-free identifiers (anonymous device ids)
- No-store JSON helper

Helpers are side-effect free; nothing here touches the database.
"""

import hashlib
import ipaddress
import os
from typing import Any, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.config import settings

__all__ = [
    "get_client_ip",
    "json_no_store",
    "pii_hash",
    "anon_device_id",
]


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
    """Best-guess client IP.

    Uses the socket peer unless ``TRUST_FORWARD_HEADERS=1``, in which case
    ``CF-Connecting-IP``, ``X-Real-Ip`` and the first ``X-Forwarded-For`` hop
    are consulted in that order.
    """
    peer = request.client.host if request.client and request.client.host else None
    peer_ip = _parse_ip(peer) or peer

    if os.environ.get("TRUST_FORWARD_HEADERS") not in {"1", "true", "True"}:
        return peer_ip or "unknown"

    for hdr in ("cf-connecting-ip", "x-real-ip"):
        ip = _parse_ip(request.headers.get(hdr))
        if ip:
            return ip

    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = _parse_ip(xff.split(",")[0].strip())
        if ip:
            return ip

    return peer_ip or "unknown"


# ─────────────────────────────────────────────────────────────────────────────
# 🕶️ PII-free identifiers
# ─────────────────────────────────────────────────────────────────────────────

def pii_hash(value: str) -> str:
    return hashlib.sha256(f"{settings.PII_HASH_SALT}|{value}".encode("utf-8")).hexdigest()


def anon_device_id(request: Request) -> str:
    """
    Derive a stable anonymous device identifier for callers that did not send one.

    sha256(ip|ua) with a server-side salt; no raw PII is persisted.
    """
    ua = request.headers.get("user-agent") or ""
    ip = get_client_ip(request) or ""
    return "anon-" + pii_hash(f"{ip}|{ua}")[:32]


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 No-store JSON helper (credential-bearing responses)
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(
    payload: Any,
    status_code: int = 200,
    *,
    response: Optional[Response] = None,
) -> JSONResponse:
    """
    Return a JSON response with strict `no-store` caching.

    Pydantic models are dumped by alias so camelCase wire names survive.
    Propagates `Location` from an upstream Response if supplied.
    """
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(by_alias=True, mode="json")
    resp = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"

    if response is not None and "Location" in response.headers:
        resp.headers["Location"] = response.headers["Location"]
    return resp
