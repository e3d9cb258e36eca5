# tests/test_services/test_media_keys.py

import pytest

from app.core.exceptions import NotFoundError
from app.schemas.enums import ContentType, Quality
from app.services.media_keys import DerivedPath, FixedPath, resolve_media_key, subtitle_key
from tests.fixtures.state import episode, movie


def test_movie_without_stored_paths_derives_manifest_key():
    key = resolve_media_key(movie("m42"), Quality.P720)
    assert key == DerivedPath(ContentType.MOVIE, "m42", Quality.P720)
    assert key.object_key() == "movies/m42/720p/index.m3u8"


def test_episode_derived_key_includes_series_and_season():
    key = resolve_media_key(episode("e7", series_id="got", season_id="got-s1"), Quality.UHD_4K)
    assert key.object_key() == "series/got/got-s1/e7/4K/index.m3u8"


def test_single_stored_path_wins_over_everything():
    content = movie("m1", video_path="legacy/m1/master.m3u8", video_qualities={"720p": "legacy/m1/720.m3u8"})
    key = resolve_media_key(content, Quality.P720)
    assert isinstance(key, FixedPath)
    assert key.object_key() == "legacy/m1/master.m3u8"


def test_per_quality_map_is_used_when_present():
    content = movie("m1", video_qualities={"480p": "old/480.m3u8", "1080p": "old/1080.m3u8"})
    assert resolve_media_key(content, Quality.P1080).object_key() == "old/1080.m3u8"


def test_per_quality_map_without_requested_quality_is_not_found():
    content = movie("m1", video_qualities={"480p": "old/480.m3u8"})
    with pytest.raises(NotFoundError) as ei:
        resolve_media_key(content, Quality.P1080)
    assert ei.value.message == "Quality 1080p not available"


def test_orphan_episode_cannot_derive_a_key():
    orphan = episode("e1", series_id=None, season_id=None)
    with pytest.raises(NotFoundError):
        resolve_media_key(orphan, Quality.P480).object_key()


def test_subtitle_key_layout():
    assert subtitle_key("sub-en") == "subtitles/sub-en.vtt"
