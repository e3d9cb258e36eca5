from __future__ import annotations

"""
Media key resolution.

Two storage schemes coexist in the catalog: older titles carry explicit object
keys (one path, or a per-quality map), newer ones rely on a derived
quality-keyed manifest layout. Both are represented as a `MediaKey`:

    FixedPath(key)                                     explicit key, used verbatim
    DerivedPath(content_type, content_id, quality, …)  key computed from ids

Precedence (first match wins):
    1. content.video_path
    2. content.video_qualities[quality]   (a map without that quality → NotFoundError)
    3. derived manifest path
"""

from dataclasses import dataclass
from typing import Optional, Union

from app.core.exceptions import NotFoundError
from app.core.storage import EPISODE_MANIFEST_KEY, MOVIE_MANIFEST_KEY, SUBTITLE_KEY
from app.repositories.catalog import ContentRecord
from app.schemas.enums import ContentType, Quality


@dataclass(frozen=True)
class FixedPath:
    key: str

    def object_key(self) -> str:
        return self.key


@dataclass(frozen=True)
class DerivedPath:
    content_type: ContentType
    content_id: str
    quality: Quality
    series_id: Optional[str] = None
    season_id: Optional[str] = None

    def object_key(self) -> str:
        if self.content_type is ContentType.EPISODE:
            if not self.series_id or not self.season_id:
                raise NotFoundError("Episode is not attached to a series/season")
            return EPISODE_MANIFEST_KEY.format(
                series_id=self.series_id,
                season_id=self.season_id,
                episode_id=self.content_id,
                quality=self.quality.value,
            )
        return MOVIE_MANIFEST_KEY.format(content_id=self.content_id, quality=self.quality.value)


MediaKey = Union[FixedPath, DerivedPath]


def resolve_media_key(content: ContentRecord, quality: Quality) -> MediaKey:
    if content.video_path:
        return FixedPath(content.video_path)

    if content.video_qualities:
        key = content.video_qualities.get(quality.value)
        if not key:
            raise NotFoundError(f"Quality {quality.value} not available")
        return FixedPath(key)

    return DerivedPath(
        content_type=ContentType(content.content_type),
        content_id=content.id,
        quality=quality,
        series_id=content.series_id,
        season_id=content.season_id,
    )


def subtitle_key(subtitle_id: str) -> str:
    return SUBTITLE_KEY.format(subtitle_id=subtitle_id)


__all__ = ["FixedPath", "DerivedPath", "MediaKey", "resolve_media_key", "subtitle_key"]
