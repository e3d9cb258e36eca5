# tests/test_services/test_playback_ledger.py

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NotFoundError
from app.repositories.playback import MemoryPlaybackRepository
from app.services.playback_ledger import PlaybackLedger, compute_progress

pytestmark = pytest.mark.anyio

T0 = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.mark.parametrize(
    "watched,total,expected",
    [(540, 600, 90), (0, 600, 0), (700, 600, 100), (10, 0, 0), (1, 200, 1), (1, 3, 33), (2, 3, 67)],
)
def test_compute_progress(watched, total, expected):
    assert compute_progress(watched, total) == expected


def _ledger():
    return PlaybackLedger(MemoryPlaybackRepository(), clock=Clock())


async def test_record_creates_then_upserts_same_row():
    ledger = _ledger()
    first = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=60, total_duration=600)
    second = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=120)

    assert second.id == first.id
    assert second.total_duration == 600
    assert second.progress == 20
    assert second.last_watched_at > first.last_watched_at


async def test_ninety_percent_marks_completed():
    rec = await _ledger().record("a1", content_id="m1", content_type="movie", watched_duration=540, total_duration=600)
    assert rec.progress == 90
    assert rec.completed is True


async def test_identical_resubmission_leaves_position_unchanged():
    ledger = _ledger()
    first = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=300, total_duration=600)
    again = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=300, total_duration=600)

    assert again.id == first.id
    assert (again.progress, again.completed, again.watched_duration) == (50, False, 300)
    assert len(await ledger.history("a1")) == 1
    assert (await ledger.position("a1", "m1", "movie")).watched_duration == 300


async def test_completion_threshold_boundary():
    ledger = _ledger()
    rec = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=534, total_duration=600)
    assert (rec.progress, rec.completed) == (89, False)

    rec = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=540)
    assert (rec.progress, rec.completed) == (90, True)


async def test_completed_is_sticky_after_rewind():
    ledger = _ledger()
    await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=590, total_duration=600)
    rec = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=30)
    assert rec.progress == 5
    assert rec.completed is True


async def test_unsupplied_fields_are_kept():
    ledger = _ledger()
    await ledger.record(
        "a1", content_id="e1", content_type="episode", watched_duration=10, total_duration=100,
        series_id="s1", season_id="s1-1", device_id="tv",
    )
    rec = await ledger.record("a1", content_id="e1", content_type="episode", watched_duration=20)
    assert (rec.series_id, rec.season_id, rec.device_id) == ("s1", "s1-1", "tv")


async def test_same_id_different_type_is_a_separate_row():
    ledger = _ledger()
    await ledger.record("a1", content_id="x", content_type="movie", watched_duration=10, total_duration=100)
    await ledger.record("a1", content_id="x", content_type="episode", watched_duration=50, total_duration=100)
    assert (await ledger.position("a1", "x", "movie")).watched_duration == 10
    assert (await ledger.position("a1", "x", "episode")).watched_duration == 50


async def test_missing_position_is_none():
    assert await _ledger().position("a1", "never", "movie") is None


async def test_history_and_continue_watching():
    ledger = _ledger()
    await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=300, total_duration=600)
    await ledger.record("a1", content_id="m2", content_type="movie", watched_duration=600, total_duration=600)
    await ledger.record("a1", content_id="m3", content_type="movie", watched_duration=10, total_duration=600)
    await ledger.record("a2", content_id="m1", content_type="movie", watched_duration=300, total_duration=600)

    history = await ledger.history("a1")
    assert [r.content_id for r in history] == ["m3", "m2", "m1"]
    assert [r.content_id for r in await ledger.history("a1", limit=1)] == ["m3"]

    # m2 completed, m3 below the 5% floor
    assert [r.content_id for r in await ledger.continue_watching("a1")] == ["m1"]


async def test_history_profile_filter():
    ledger = _ledger()
    await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=1, total_duration=10, profile_id="kids")
    await ledger.record("a1", content_id="m2", content_type="movie", watched_duration=1, total_duration=10, profile_id="adult")
    assert [r.content_id for r in await ledger.history("a1", profile_id="kids")] == ["m1"]


async def test_forget_only_own_entries():
    ledger = _ledger()
    rec = await ledger.record("a1", content_id="m1", content_type="movie", watched_duration=1, total_duration=10)

    with pytest.raises(NotFoundError):
        await ledger.forget("someone-else", rec.id)

    await ledger.forget("a1", rec.id)
    assert await ledger.position("a1", "m1", "movie") is None

    with pytest.raises(NotFoundError) as ei:
        await ledger.forget("a1", rec.id)
    assert ei.value.message == "Watch history not found"
