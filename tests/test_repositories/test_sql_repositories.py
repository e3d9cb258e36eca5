# tests/test_repositories/test_sql_repositories.py

from datetime import datetime, timedelta, timezone

import pytest

from app.db.models import Content, Plan, Subscription
from app.repositories.accounts import ActiveStream, Device, SqlAlchemyAccountRepository
from app.repositories.catalog import SqlAlchemyCatalogRepository
from app.repositories.playback import PositionRecord, SqlAlchemyPlaybackRepository
from app.repositories.subscriptions import SqlAlchemySubscriptionRepository
from app.services.concurrency_guard import ConcurrencyGuard, DeviceDescriptor
from app.services.plan_policy import PlanPolicy

pytestmark = pytest.mark.anyio

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────
# Accounts (revision-checked writes)
# ─────────────────────────────────────────────────────────────

async def test_account_is_created_on_first_load(db_session):
    snap = await SqlAlchemyAccountRepository(db_session).load("a1")
    assert snap.revision == 0
    assert snap.devices == [] and snap.streams == []


async def test_compare_and_swap_bumps_revision_and_rejects_stale(db_session):
    repo = SqlAlchemyAccountRepository(db_session)
    snap = await repo.load("a1")
    device = Device(device_id="d1", device_name="Phone", device_type="mobile", last_active=NOW)
    stream = ActiveStream(stream_id="s1", content_id="m1", content_type="movie", device_id="d1", started_at=NOW)

    assert await repo.compare_and_swap("a1", snap.revision, [device], [stream]) is True
    assert await repo.compare_and_swap("a1", snap.revision, [], []) is False

    fresh = await repo.load("a1")
    assert fresh.revision == 1
    assert fresh.devices[0].device_id == "d1"
    assert fresh.devices[0].last_active == NOW
    assert fresh.streams[0].stream_id == "s1"


async def test_two_sessions_racing_on_one_revision(session_factory):
    async with session_factory() as s1, session_factory() as s2:
        r1, r2 = SqlAlchemyAccountRepository(s1), SqlAlchemyAccountRepository(s2)
        base = await r1.load("a1")
        await r2.load("a1")

        assert await r1.compare_and_swap("a1", base.revision, [], []) is True
        assert await r2.compare_and_swap("a1", base.revision, [], []) is False
        assert (await r2.load("a1")).revision == 1


async def test_guard_over_sql_enforces_stream_cap(db_session):
    guard = ConcurrencyGuard(SqlAlchemyAccountRepository(db_session), backoff_ms=0)
    policy = PlanPolicy(name="Basic", max_devices=2, max_streams=1)
    await guard.admit_stream("a1", policy, DeviceDescriptor(device_id="d1"), content_id="m1", content_type="movie")

    from app.core.exceptions import ConcurrencyLimitError

    with pytest.raises(ConcurrencyLimitError):
        await guard.admit_stream("a1", policy, DeviceDescriptor(device_id="d1"), content_id="m2", content_type="movie")
    assert await guard.release_stream("a1", content_id="m1", device_id="d1") == 1


# ─────────────────────────────────────────────────────────────
# Subscriptions / catalog
# ─────────────────────────────────────────────────────────────

async def test_find_active_returns_latest_active_with_plan(db_session):
    db_session.add_all([
        Plan(id="p-basic", name="Basic", price=199, quality="720p", max_devices=2, max_streams=1),
        Plan(id="p-prem", name="Premium", price=649, quality="4K", max_devices=5, max_streams=4),
    ])
    await db_session.flush()
    db_session.add_all([
        Subscription(id="s-old", account_id="a1", plan_id="p-basic", status="active",
                     start_date=NOW - timedelta(days=40), end_date=NOW + timedelta(days=1)),
        Subscription(id="s-new", account_id="a1", plan_id="p-prem", status="active",
                     start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=29)),
        Subscription(id="s-cxl", account_id="a1", plan_id="p-prem", status="cancelled",
                     start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=90)),
    ])
    await db_session.commit()

    sub = await SqlAlchemySubscriptionRepository(db_session).find_active("a1")
    assert sub.id == "s-new"
    assert sub.end_date.tzinfo is not None
    assert sub.plan.name == "Premium"
    assert sub.plan.quality == "4K"
    assert sub.plan.max_streams == 4

    assert await SqlAlchemySubscriptionRepository(db_session).find_active("nobody") is None


async def test_catalog_lookup_is_type_scoped(db_session):
    db_session.add_all([
        Content(id="m1", content_type="movie", title="Movie", video_qualities={"720p": "x/720.m3u8"},
                subtitles=[{"language": "en"}]),
        Content(id="e1", content_type="episode", title="Ep", series_id="s1", season_id="s1-1", is_active=False),
    ])
    await db_session.commit()
    repo = SqlAlchemyCatalogRepository(db_session)

    m1 = await repo.get_content("m1", "movie")
    assert m1.video_qualities == {"720p": "x/720.m3u8"}
    assert m1.subtitles == [{"language": "en"}]
    assert await repo.get_content("m1", "episode") is None

    e1 = await repo.get_content("e1", "episode")
    assert e1.is_active is False
    assert (e1.series_id, e1.season_id) == ("s1", "s1-1")


# ─────────────────────────────────────────────────────────────
# Playback positions
# ─────────────────────────────────────────────────────────────

def _pos(**kw):
    base = dict(account_id="a1", content_id="m1", content_type="movie", watched_duration=10,
                total_duration=100, progress=10, last_watched_at=NOW)
    base.update(kw)
    return PositionRecord(**base)


async def test_position_upsert_keeps_one_row(db_session):
    repo = SqlAlchemyPlaybackRepository(db_session)
    first = await repo.save(_pos())
    second = await repo.save(_pos(watched_duration=50, progress=50, last_watched_at=NOW + timedelta(minutes=1)))

    assert second.id == first.id
    got = await repo.get("a1", "m1", "movie")
    assert got.watched_duration == 50
    assert got.last_watched_at == NOW + timedelta(minutes=1)


async def test_list_recent_and_in_progress_filter(db_session):
    repo = SqlAlchemyPlaybackRepository(db_session)
    await repo.save(_pos(content_id="m1", progress=50, last_watched_at=NOW))
    await repo.save(_pos(content_id="m2", progress=95, completed=True, last_watched_at=NOW + timedelta(minutes=1)))
    await repo.save(_pos(content_id="m3", progress=2, last_watched_at=NOW + timedelta(minutes=2)))
    await repo.save(_pos(account_id="a2", content_id="m1", progress=50))

    assert [r.content_id for r in await repo.list_recent("a1")] == ["m3", "m2", "m1"]
    assert [r.content_id for r in await repo.list_recent("a1", in_progress_only=True)] == ["m1"]
    assert [r.content_id for r in await repo.list_recent("a1", limit=2)] == ["m3", "m2"]


async def test_delete_is_owner_scoped(db_session):
    repo = SqlAlchemyPlaybackRepository(db_session)
    saved = await repo.save(_pos())
    assert await repo.delete("a2", saved.id) is False
    assert await repo.delete("a1", saved.id) is True
    assert await repo.get("a1", "m1", "movie") is None
