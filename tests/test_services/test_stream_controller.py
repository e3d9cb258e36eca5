# tests/test_services/test_stream_controller.py

import pytest

from app.core.exceptions import (
    ConcurrencyLimitError,
    EntitlementError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from app.schemas.enums import ContentType, Quality
from app.services.concurrency_guard import ConcurrencyGuard, DeviceDescriptor
from app.services.credentials import CredentialIssuer
from app.services.entitlement import EntitlementResolver
from app.services.playback_ledger import PlaybackLedger
from app.services.stream_controller import StreamController
from tests.fixtures.state import FailingStorage, FakeStorage, episode, movie

pytestmark = pytest.mark.anyio

SECRET = "controller-test-secret"


def _controller(state):
    return StreamController(
        entitlements=EntitlementResolver(state.subscriptions),
        guard=ConcurrencyGuard(state.accounts, backoff_ms=0),
        catalog=state.catalog,
        issuer=CredentialIssuer(state.storage, secret=SECRET),
        ledger=PlaybackLedger(state.playback),
    )


async def _start(ctrl, content_id="m1", content_type=ContentType.MOVIE, device="d1", quality=None, account="a1"):
    return await ctrl.start(
        account,
        content_id=content_id,
        content_type=content_type,
        device=DeviceDescriptor(device_id=device),
        quality=quality,
    )


async def _stream_count(state, account="a1"):
    return len((await state.accounts.load(account)).streams)


async def test_movie_start_happy_path(state):
    state.subscribe("a1", quality="1080p")
    await PlaybackLedger(state.playback).record(
        "a1", content_id="m1", content_type="movie", watched_duration=120, total_duration=600
    )
    ctrl = _controller(state)

    session = await _start(ctrl, quality="4K")

    assert session.quality is Quality.P1080
    assert session.max_quality is Quality.P1080
    assert session.available_qualities == [Quality.P480, Quality.P720, Quality.P1080]
    assert session.resume_at == 120
    assert session.progress == 20
    assert session.subtitles[0]["language"] == "en"
    assert state.storage.downloads[-1][0] == "movies/m1/1080p/index.m3u8"

    claims = ctrl.issuer.verify(session.token)
    assert claims["streamId"] == session.stream_id
    assert claims["quality"] == "1080p"
    assert await _stream_count(state) == 1


async def test_episode_start_embeds_series_and_season(state):
    state.subscribe("a1", quality="720p")
    ctrl = _controller(state)

    session = await _start(ctrl, content_id="e1", content_type=ContentType.EPISODE)

    claims = ctrl.issuer.verify(session.token)
    assert (claims["seriesId"], claims["seasonId"]) == ("s1", "s1-1")
    assert state.storage.downloads[-1][0] == "series/s1/s1-1/e1/720p/index.m3u8"


async def test_no_subscription_rejected_before_any_write(state):
    ctrl = _controller(state)
    with pytest.raises(EntitlementError):
        await _start(ctrl)
    assert (await state.accounts.load("a1")).revision == 0


async def test_missing_or_inactive_content_does_not_take_a_slot(state):
    state.subscribe("a1")
    state.catalog.add(movie("gone", is_active=False))
    ctrl = _controller(state)

    with pytest.raises(NotFoundError) as ei:
        await _start(ctrl, content_id="gone")
    assert ei.value.message == "Movie not found"

    with pytest.raises(NotFoundError) as ei:
        await _start(ctrl, content_id="m1", content_type=ContentType.EPISODE)
    assert ei.value.message == "Episode not found"

    assert await _stream_count(state) == 0


async def test_unavailable_legacy_quality_does_not_take_a_slot(state):
    state.subscribe("a1", quality="4K")
    state.catalog.add(movie("legacy", video_qualities={"480p": "legacy/480.m3u8"}))
    ctrl = _controller(state)

    with pytest.raises(NotFoundError):
        await _start(ctrl, content_id="legacy")
    assert await _stream_count(state) == 0

    session = await _start(ctrl, content_id="legacy", quality="480p")
    assert session.stream_url.startswith("https://r2.test/streamgate-test/legacy/480.m3u8")


async def test_unsignable_stored_path_is_not_found_and_takes_no_slot(state):
    state.subscribe("a1", max_streams=1)
    state.catalog.add(movie("amelie", video_path="legacy/Amélie#1.mp4"))
    ctrl = _controller(state)

    for _ in range(2):
        with pytest.raises(NotFoundError) as ei:
            await _start(ctrl, content_id="amelie")
        assert ei.value.message == "Media not available"
    assert await _stream_count(state) == 0
    assert state.storage.downloads == []

    await _start(ctrl, content_id="m1")
    assert await _stream_count(state) == 1


async def test_signing_failure_releases_the_admitted_slot(state):
    state.subscribe("a1", max_streams=1)
    state.storage = FailingStorage()
    ctrl = _controller(state)

    with pytest.raises(StorageUnavailableError):
        await _start(ctrl)
    assert await _stream_count(state) == 0
    assert [d.device_id for d in await ctrl.guard.list_devices("a1")] == ["d1"]

    ctrl.issuer.storage = FakeStorage()
    session = await _start(ctrl)
    assert await _stream_count(state) == 1
    assert ctrl.issuer.verify(session.token)["streamId"] == session.stream_id


async def test_bad_quality_label_is_validation_error(state):
    state.subscribe("a1")
    with pytest.raises(ValidationError):
        await _start(_controller(state), quality="ultra")


async def test_stop_frees_slot_for_next_start(state):
    state.subscribe("a1", max_streams=1)
    ctrl = _controller(state)
    await _start(ctrl, content_id="m1", device="d1")

    with pytest.raises(ConcurrencyLimitError):
        await _start(ctrl, content_id="e1", content_type=ContentType.EPISODE, device="d1")

    assert await ctrl.stop("a1", content_id="m1", device_id="d1") == 1
    await _start(ctrl, content_id="e1", content_type=ContentType.EPISODE, device="d1")


async def test_subtitle_is_signed_without_entitlement(state):
    signed = _controller(state).subtitle("sub-en")
    assert "subtitles/sub-en.vtt" in signed.url
