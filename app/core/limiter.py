from __future__ import annotations

"""
StreamGate — HTTP Rate Limiting (SlowAPI)
=========================================

- **Account/IP aware** keying: per-account when the security dependency has
  set `request.state.account_id`, else per-client-IP.
- **Exemptions**: probes/docs, plus a test/CI bypass switch.
- **Backends**: `settings.ratelimit_storage` (`memory://` or `redis://…`).

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/docs,/openapi.json"
RATE_LIMIT_NAMESPACE         default: "" (e.g., "pytest-<runid>")
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)

Usage
-----
    from app.core.limiter import install_rate_limiter, rate_limit, rate_limit_exempt

    install_rate_limiter(app)

    @router.get("/stream/movie/{movie_id}")
    @rate_limit("30/minute")
    async def start_movie(request: Request, ...): ...
"""

import os
from typing import Callable, List, Optional

from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request

from app.api.http_utils import get_client_ip
from app.core.config import settings

_TRUTHY = {"1", "true", "yes", "on"}

SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv("RATE_LIMIT_SKIP_PATHS", "/healthz,/readyz,/docs,/openapi.json").split(",")
    if p.strip()
]
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


def _enabled() -> bool:
    return os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() == "true"


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def rate_limit_key(request: Request) -> str:
    """`account:<id>` when authenticated, else `ip:<addr>` (namespaced)."""
    account_id = getattr(request.state, "account_id", None)
    key = f"account:{account_id}" if account_id else f"ip:{get_client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def should_exempt_request(request: Optional[Request]) -> bool:
    # Env is re-read per request so tests can toggle it.
    if not _enabled():
        return True
    if request is None:
        return False
    if os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY:
        return True
    path = request.url.path
    return any(path == p or path.startswith(p.rstrip("/") + "/") for p in SKIP_PATHS)


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
def _default_limits() -> List[str]:
    return [chunk.strip() for chunk in settings.DEFAULT_RATE_LIMIT.split(",") if chunk.strip()]


def _make_limiter() -> Limiter:
    storage_uri = settings.ratelimit_storage
    limiter = Limiter(
        key_func=rate_limit_key,
        default_limits=_default_limits(),
        headers_enabled=True,
        storage_uri=storage_uri,
    )
    logger.info("RateLimiter ready | default={} | storage={}", _default_limits(), storage_uri.split("@")[-1])
    return limiter


limiter: Limiter = _make_limiter()


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def _exempt_when(request: Optional[Request] = None) -> bool:
    return should_exempt_request(request)


def rate_limit(*limits: str) -> Callable:
    """Apply per-route limits (the route must accept a `request: Request`)."""
    selected = list(limits) if limits else _default_limits()

    def _apply(fn: Callable) -> Callable:
        for limit_value in reversed(selected):
            fn = limiter.limit(limit_value, exempt_when=_exempt_when)(fn)
        return fn

    return _apply


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting."""
    return limiter.exempt


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach SlowAPI middleware unless disabled by env."""
    if not _enabled():
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)


__all__ = ["limiter", "rate_limit", "rate_limit_exempt", "install_rate_limiter", "rate_limit_key"]
