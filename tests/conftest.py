# tests/conftest.py
"""
Global test bootstrap
- Required settings are seeded BEFORE any `app.*` import
- SlowAPI rate-limiting bypassed by default (opt back in with `ratelimit_on`)
- No log files; in-memory limiter storage
"""

from __future__ import annotations

import os
import random

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set before importing the app so Settings() sees it)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("JWT_SECRET_KEY", "test-access-secret-0123456789abcdef")
os.environ.setdefault("STREAMING_TOKEN_SECRET", "test-streaming-secret-0123456789")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("R2_BUCKET_NAME", "streamgate-test")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("ADMISSION_RETRY_BACKOFF_MS", "0")

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Fixtures
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.state import *  # noqa: E402,F401,F403
from tests.fixtures.app import *    # noqa: E402,F401,F403
from tests.fixtures.db import *     # noqa: E402,F401,F403


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Opt-in fixture to actually enforce rate limits in a specific test
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def ratelimit_on(monkeypatch):
    """The limiter re-reads the bypass switch per request, so no reload is needed."""
    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "0")
    from app.core.limiter import limiter

    limiter.reset()
    yield
    limiter.reset()
