from __future__ import annotations

"""
StreamGate • Storage layout & collaborator
==========================================

Documented key layout (single private R2 bucket):

    {bucket}/
      movies/{content_id}/{quality}/index.m3u8
      series/{series_id}/{season_id}/{episode_id}/{quality}/index.m3u8
      subtitles/{subtitle_id}.vtt

Objects are private; players reach them only through presigned URLs.

`StorageProtocol` is the interface the credential issuer depends on. Key
problems surface as `app.utils.aws.S3StorageError` from any binding; the
production binding is `app.utils.aws.S3Client`, tests inject a fake.
"""

from functools import lru_cache
from typing import Protocol

# Key templates
MOVIE_MANIFEST_KEY = "movies/{content_id}/{quality}/index.m3u8"
EPISODE_MANIFEST_KEY = "series/{series_id}/{season_id}/{episode_id}/{quality}/index.m3u8"
SUBTITLE_KEY = "subtitles/{subtitle_id}.vtt"


class StorageProtocol(Protocol):
    def normalize_key(self, key: str) -> str: ...

    def request_download_url(self, key: str, ttl: int) -> str: ...

    def request_upload_url(self, key: str, content_type: str, ttl: int = 3600) -> str: ...

    def delete_object(self, key: str) -> bool: ...


@lru_cache(maxsize=1)
def get_storage() -> StorageProtocol:
    """FastAPI dependency: process-wide R2 client (built on first use)."""
    from app.utils.aws import S3Client

    return S3Client()


__all__ = [
    "MOVIE_MANIFEST_KEY",
    "EPISODE_MANIFEST_KEY",
    "SUBTITLE_KEY",
    "StorageProtocol",
    "get_storage",
]
