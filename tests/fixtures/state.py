# tests/fixtures/state.py
"""
🧪 In-memory collaborators:
- FakeStorage that records presign requests instead of signing
- Account repositories that interleave or always lose the revision race
- Builders for plans, subscriptions and catalog rows
- `state` fixture bundling one fresh set of memory repositories per test
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import anyio
import pytest

from app.repositories.accounts import MemoryAccountRepository
from app.repositories.catalog import ContentRecord, MemoryCatalogRepository
from app.repositories.playback import MemoryPlaybackRepository
from app.repositories.subscriptions import MemorySubscriptionRepository, PlanRecord, SubscriptionRecord
from app.utils.aws import S3StorageError, _normalize_key

__all__ = [
    "FakeStorage",
    "FailingStorage",
    "InterleavingAccountRepository",
    "ContendedAccountRepository",
    "StreamGateState",
    "make_plan",
    "make_subscription",
    "movie",
    "episode",
    "state",
]


class FakeStorage:
    """Stand-in for the R2 client: deterministic URLs, every call recorded."""

    def __init__(self) -> None:
        self.downloads: List[Tuple[str, int]] = []
        self.uploads: List[Tuple[str, str, int]] = []
        self.deleted: List[str] = []

    def normalize_key(self, key: str) -> str:
        return _normalize_key(key)

    def request_download_url(self, key: str, ttl: int) -> str:
        self.downloads.append((key, ttl))
        return f"https://r2.test/streamgate-test/{key}?X-Amz-Expires={ttl}"

    def request_upload_url(self, key: str, content_type: str, ttl: int = 3600) -> str:
        self.uploads.append((key, content_type, ttl))
        return f"https://r2.test/streamgate-test/{key}?upload=1"

    def delete_object(self, key: str) -> bool:
        self.deleted.append(key)
        return True


class FailingStorage(FakeStorage):
    """Accepts every key but cannot sign anything."""

    def request_download_url(self, key: str, ttl: int) -> str:
        self.downloads.append((key, ttl))
        raise S3StorageError("Failed to generate presigned download URL")


class InterleavingAccountRepository(MemoryAccountRepository):
    """Yields between read and write so concurrent admissions really race."""

    async def load(self, account_id):
        snapshot = await super().load(account_id)
        await anyio.sleep(0)
        return snapshot


class ContendedAccountRepository(MemoryAccountRepository):
    """Every conditional write loses."""

    def __init__(self) -> None:
        super().__init__()
        self.attempts = 0

    async def compare_and_swap(self, account_id, expected_revision, devices, streams) -> bool:
        self.attempts += 1
        return False


def make_plan(
    *,
    name: str = "Premium",
    quality: str = "1080p",
    max_devices: int = 5,
    max_streams: int = 3,
    ad_free: bool = True,
    download_allowed: bool = False,
) -> PlanRecord:
    return PlanRecord(
        id=f"plan-{name.lower()}",
        name=name,
        quality=quality,
        max_devices=max_devices,
        max_streams=max_streams,
        ad_free=ad_free,
        download_allowed=download_allowed,
    )


def make_subscription(
    account_id: str,
    plan: Optional[PlanRecord] = None,
    *,
    status: str = "active",
    ends_in: timedelta = timedelta(days=30),
    now: Optional[datetime] = None,
) -> SubscriptionRecord:
    now = now or datetime.now(timezone.utc)
    return SubscriptionRecord(
        id=f"sub-{account_id}-{status}",
        account_id=account_id,
        status=status,
        start_date=now - timedelta(days=1),
        end_date=now + ends_in,
        plan=plan or make_plan(),
    )


def movie(content_id: str = "m1", **kw) -> ContentRecord:
    return ContentRecord(id=content_id, content_type="movie", title=kw.pop("title", "A Movie"), **kw)


def episode(content_id: str = "e1", *, series_id: str = "s1", season_id: str = "s1-1", **kw) -> ContentRecord:
    return ContentRecord(
        id=content_id,
        content_type="episode",
        series_id=series_id,
        season_id=season_id,
        title=kw.pop("title", "An Episode"),
        **kw,
    )


@dataclass
class StreamGateState:
    accounts: MemoryAccountRepository = field(default_factory=MemoryAccountRepository)
    subscriptions: MemorySubscriptionRepository = field(default_factory=MemorySubscriptionRepository)
    catalog: MemoryCatalogRepository = field(default_factory=MemoryCatalogRepository)
    playback: MemoryPlaybackRepository = field(default_factory=MemoryPlaybackRepository)
    storage: FakeStorage = field(default_factory=FakeStorage)

    def subscribe(self, account_id: str, **plan_kw) -> SubscriptionRecord:
        return self.subscriptions.add(make_subscription(account_id, make_plan(**plan_kw)))


@pytest.fixture()
def state() -> StreamGateState:
    """✅ Fresh memory repositories (one catalog movie + one episode preloaded)."""
    st = StreamGateState()
    st.catalog.add(movie("m1", subtitles=[{"id": "sub-en", "language": "en", "label": "English"}]))
    st.catalog.add(episode("e1"))
    return st
