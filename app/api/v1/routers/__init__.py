"""
🧭 StreamGate • API v1 Router Aggregator
========================================

Exports the **combined `router`** (ready to include) and each sub-router.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Auth & rate limits live in the child routers; this layer only composes them.
"""

from fastapi import APIRouter

from .devices import router as devices_router
from .stream import router as stream_router
from .watch_history import router as watch_history_router


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Factory: build a combined v1 router with stable path layout
# ─────────────────────────────────────────────────────────────────────────────
def build_v1_router() -> APIRouter:
    """
    Compose the API v1 surface into a single `APIRouter`.

    Includes `/stream/*`, `/devices/*` and `/watch-history/*`.
    """
    v1 = APIRouter()
    v1.include_router(stream_router)
    v1.include_router(devices_router)
    v1.include_router(watch_history_router)
    return v1


router = build_v1_router()

__all__ = [
    "router",
    "build_v1_router",
    "stream_router",
    "devices_router",
    "watch_history_router",
]
