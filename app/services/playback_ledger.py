from __future__ import annotations

"""
Playback position ledger.

Idempotent upsert of watch progress per (account, content id, content type),
plus the watch-history views built on the same rows.

Rules
-----
- Only supplied fields overwrite stored ones (`None` = not supplied).
- progress = min(100, round(watched / total * 100)) when total > 0, else 0.
- completed = progress >= 90, and once completed a row stays completed.
- The resume point is the stored `watched_duration`.
"""

from datetime import datetime
from typing import Callable, List, Optional
import logging

from app.core.exceptions import NotFoundError
from app.repositories.playback import PlaybackRepositoryProtocol, PositionRecord
from app.services.entitlement import utcnow

logger = logging.getLogger(__name__)

COMPLETION_THRESHOLD = 90
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_CONTINUE_LIMIT = 20


def compute_progress(watched: int, total: int) -> int:
    if total <= 0:
        return 0
    pct = int(max(0, watched) * 100 / total + 0.5)
    return max(0, min(100, pct))


class PlaybackLedger:
    def __init__(self, repo: PlaybackRepositoryProtocol, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    async def record(
        self,
        account_id: str,
        *,
        content_id: str,
        content_type: str,
        watched_duration: Optional[int] = None,
        total_duration: Optional[int] = None,
        series_id: Optional[str] = None,
        season_id: Optional[str] = None,
        device_id: Optional[str] = None,
        profile_id: Optional[str] = None,
    ) -> PositionRecord:
        row = await self.repo.get(account_id, content_id, content_type)
        if row is None:
            row = PositionRecord(
                account_id=account_id,
                content_id=content_id,
                content_type=content_type,
                profile_id=profile_id,
            )

        if watched_duration is not None:
            row.watched_duration = int(watched_duration)
        if total_duration is not None:
            row.total_duration = int(total_duration)
        if series_id is not None:
            row.series_id = series_id
        if season_id is not None:
            row.season_id = season_id
        if device_id is not None:
            row.device_id = device_id
        if profile_id is not None:
            row.profile_id = profile_id

        row.progress = compute_progress(row.watched_duration, row.total_duration)
        row.completed = row.completed or row.progress >= COMPLETION_THRESHOLD
        row.last_watched_at = self.clock()

        saved = await self.repo.save(row)
        logger.debug(
            "Position account=%s content=%s:%s watched=%s progress=%s",
            account_id, content_type, content_id, saved.watched_duration, saved.progress,
        )
        return saved

    async def position(self, account_id: str, content_id: str, content_type: str) -> Optional[PositionRecord]:
        return await self.repo.get(account_id, content_id, content_type)

    async def history(
        self, account_id: str, *, profile_id: Optional[str] = None, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[PositionRecord]:
        return await self.repo.list_recent(account_id, profile_id=profile_id, limit=limit)

    async def continue_watching(
        self, account_id: str, *, profile_id: Optional[str] = None, limit: int = DEFAULT_CONTINUE_LIMIT
    ) -> List[PositionRecord]:
        return await self.repo.list_recent(account_id, profile_id=profile_id, limit=limit, in_progress_only=True)

    async def forget(self, account_id: str, entry_id: str) -> None:
        if not await self.repo.delete(account_id, entry_id):
            raise NotFoundError("Watch history not found")


__all__ = ["PlaybackLedger", "compute_progress", "COMPLETION_THRESHOLD"]
