from __future__ import annotations

"""
Playback position storage.

Rows are keyed by `(account_id, content_id, content_type)`. `save` is an
upsert on that key; the arithmetic (progress, completion) lives in
`app.services.playback_ledger`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base_class import new_id
from app.db.models.playback_position import PlaybackPosition
from app.db.session import get_async_db

CONTINUE_WATCHING_MIN_PROGRESS = 5


@dataclass
class PositionRecord:
    account_id: str
    content_id: str
    content_type: str
    id: str = field(default_factory=new_id)
    profile_id: Optional[str] = None
    series_id: Optional[str] = None
    season_id: Optional[str] = None
    watched_duration: int = 0
    total_duration: int = 0
    progress: int = 0
    completed: bool = False
    device_id: Optional[str] = None
    last_watched_at: Optional[datetime] = None


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo:
        return dt
    return dt.replace(tzinfo=timezone.utc)


class PlaybackRepositoryProtocol(ABC):
    @abstractmethod
    async def get(self, account_id: str, content_id: str, content_type: str) -> Optional[PositionRecord]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, record: PositionRecord) -> PositionRecord:
        """Insert or update the row for the record's key."""
        raise NotImplementedError

    @abstractmethod
    async def list_recent(
        self,
        account_id: str,
        *,
        profile_id: Optional[str] = None,
        limit: int = 50,
        in_progress_only: bool = False,
    ) -> List[PositionRecord]:
        """Most recently watched first. `in_progress_only`: not completed and progress > 5."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, account_id: str, entry_id: str) -> bool:
        raise NotImplementedError


class MemoryPlaybackRepository(PlaybackRepositoryProtocol):
    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str, str], PositionRecord] = {}

    async def get(self, account_id, content_id, content_type):
        row = self._rows.get((account_id, content_id, content_type))
        return replace(row) if row else None

    async def save(self, record):
        key = (record.account_id, record.content_id, record.content_type)
        existing = self._rows.get(key)
        if existing is not None:
            record = replace(record, id=existing.id)
        self._rows[key] = replace(record)
        return record

    async def list_recent(self, account_id, *, profile_id=None, limit=50, in_progress_only=False):
        rows = [r for r in self._rows.values() if r.account_id == account_id]
        if profile_id:
            rows = [r for r in rows if r.profile_id == profile_id]
        if in_progress_only:
            rows = [r for r in rows if not r.completed and r.progress > CONTINUE_WATCHING_MIN_PROGRESS]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        rows.sort(key=lambda r: r.last_watched_at or epoch, reverse=True)
        return [replace(r) for r in rows[: max(0, limit)]]

    async def delete(self, account_id, entry_id):
        for key, row in list(self._rows.items()):
            if row.id == entry_id and row.account_id == account_id:
                del self._rows[key]
                return True
        return False


class SqlAlchemyPlaybackRepository(PlaybackRepositoryProtocol):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @staticmethod
    def _to_record(row: PlaybackPosition) -> PositionRecord:
        return PositionRecord(
            id=row.id,
            account_id=row.account_id,
            profile_id=row.profile_id,
            content_id=row.content_id,
            content_type=row.content_type,
            series_id=row.series_id,
            season_id=row.season_id,
            watched_duration=row.watched_duration,
            total_duration=row.total_duration,
            progress=row.progress,
            completed=bool(row.completed),
            device_id=row.device_id,
            last_watched_at=_aware(row.last_watched_at),
        )

    async def _row(self, account_id: str, content_id: str, content_type: str) -> Optional[PlaybackPosition]:
        result = await self.db.execute(
            select(PlaybackPosition)
            .where(
                PlaybackPosition.account_id == account_id,
                PlaybackPosition.content_id == content_id,
                PlaybackPosition.content_type == content_type,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get(self, account_id, content_id, content_type):
        row = await self._row(account_id, content_id, content_type)
        return self._to_record(row) if row else None

    def _apply(self, row: PlaybackPosition, record: PositionRecord) -> None:
        for name in (
            "profile_id",
            "series_id",
            "season_id",
            "watched_duration",
            "total_duration",
            "progress",
            "completed",
            "device_id",
            "last_watched_at",
        ):
            setattr(row, name, getattr(record, name))

    async def save(self, record):
        row = await self._row(record.account_id, record.content_id, record.content_type)
        if row is None:
            row = PlaybackPosition(
                id=record.id,
                account_id=record.account_id,
                content_id=record.content_id,
                content_type=record.content_type,
            )
            self._apply(row, record)
            self.db.add(row)
            try:
                await self.db.commit()
                return self._to_record(row)
            except IntegrityError:
                # Lost the insert race; fall through and update the winner's row.
                await self.db.rollback()
                row = await self._row(record.account_id, record.content_id, record.content_type)
                if row is None:
                    raise
        self._apply(row, record)
        await self.db.commit()
        return self._to_record(row)

    async def list_recent(self, account_id, *, profile_id=None, limit=50, in_progress_only=False):
        stmt = select(PlaybackPosition).where(PlaybackPosition.account_id == account_id)
        if profile_id:
            stmt = stmt.where(PlaybackPosition.profile_id == profile_id)
        if in_progress_only:
            stmt = stmt.where(
                PlaybackPosition.completed.is_(False),
                PlaybackPosition.progress > CONTINUE_WATCHING_MIN_PROGRESS,
            )
        stmt = stmt.order_by(PlaybackPosition.last_watched_at.desc()).limit(max(0, limit))
        result = await self.db.execute(stmt)
        return [self._to_record(r) for r in result.scalars().all()]

    async def delete(self, account_id, entry_id):
        result = await self.db.execute(
            delete(PlaybackPosition).where(
                PlaybackPosition.id == entry_id, PlaybackPosition.account_id == account_id
            )
        )
        await self.db.commit()
        return result.rowcount == 1


def get_playback_repository(db: AsyncSession = Depends(get_async_db)) -> PlaybackRepositoryProtocol:
    return SqlAlchemyPlaybackRepository(db)


__all__ = [
    "PositionRecord",
    "PlaybackRepositoryProtocol",
    "MemoryPlaybackRepository",
    "SqlAlchemyPlaybackRepository",
    "get_playback_repository",
    "CONTINUE_WATCHING_MIN_PROGRESS",
]
