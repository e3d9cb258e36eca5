from __future__ import annotations

"""Catalog read model: the few content fields playback needs."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.content import Content
from app.db.session import get_async_db


@dataclass(frozen=True)
class ContentRecord:
    id: str
    content_type: str
    is_active: bool = True
    title: str = ""
    video_path: Optional[str] = None
    video_qualities: Optional[Dict[str, str]] = None
    series_id: Optional[str] = None
    season_id: Optional[str] = None
    subtitles: List[Dict[str, Any]] = field(default_factory=list)


class CatalogRepositoryProtocol(ABC):
    @abstractmethod
    async def get_content(self, content_id: str, content_type: str) -> Optional[ContentRecord]:
        raise NotImplementedError


class MemoryCatalogRepository(CatalogRepositoryProtocol):
    def __init__(self, items: Optional[List[ContentRecord]] = None) -> None:
        self._items: Dict[str, ContentRecord] = {c.id: c for c in (items or [])}

    def add(self, record: ContentRecord) -> ContentRecord:
        self._items[record.id] = record
        return record

    async def get_content(self, content_id: str, content_type: str) -> Optional[ContentRecord]:
        item = self._items.get(content_id)
        if item is None or item.content_type != content_type:
            return None
        return item


class SqlAlchemyCatalogRepository(CatalogRepositoryProtocol):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_content(self, content_id: str, content_type: str) -> Optional[ContentRecord]:
        result = await self.db.execute(
            select(Content).where(Content.id == content_id, Content.content_type == content_type)
        )
        row = result.scalars().first()
        if row is None:
            return None
        return ContentRecord(
            id=row.id,
            content_type=row.content_type,
            is_active=bool(row.is_active),
            title=row.title or "",
            video_path=row.video_path,
            video_qualities=dict(row.video_qualities) if row.video_qualities else None,
            series_id=row.series_id,
            season_id=row.season_id,
            subtitles=list(row.subtitles or []),
        )


def get_catalog_repository(db: AsyncSession = Depends(get_async_db)) -> CatalogRepositoryProtocol:
    return SqlAlchemyCatalogRepository(db)


__all__ = [
    "ContentRecord",
    "CatalogRepositoryProtocol",
    "MemoryCatalogRepository",
    "SqlAlchemyCatalogRepository",
    "get_catalog_repository",
]
