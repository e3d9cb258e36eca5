from __future__ import annotations

"""
StreamGate — Database Engine & Session Dependencies

One async engine per process (asyncpg in production). Connections are opened
lazily, so importing this module never needs a reachable database; the
SQLAlchemy repositories receive their `AsyncSession` through `get_async_db`.

Pool sizing comes from `DB_POOL_SIZE` / `DB_MAX_OVERFLOW` /
`DB_POOL_RECYCLE_SECONDS`. Admission writes are short single-row UPDATEs, so
the pool mostly needs breadth, not long checkouts.
"""

from typing import AsyncGenerator
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# ⚡ Engine & session factory
# ─────────────────────────────────────────────────────────────
def build_engine(url: str | None = None) -> AsyncEngine:
    return create_async_engine(
        url or settings.ASYNC_DATABASE_URL,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        echo=settings.DB_ECHO,
    )


async_engine: AsyncEngine = build_engine()
async_session_maker = async_sessionmaker(bind=async_engine, expire_on_commit=False)


# ─────────────────────────────────────────────────────────────
# 🔌 FastAPI dependency
# ─────────────────────────────────────────────────────────────
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session; uncommitted work is rolled back on error."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ─────────────────────────────────────────────────────────────
# 🩺 Readiness probe
# ─────────────────────────────────────────────────────────────
async def db_healthcheck() -> bool:
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database not ready: %s", e)
        return False
    return True


__all__ = ["async_engine", "async_session_maker", "build_engine", "get_async_db", "db_healthcheck"]
