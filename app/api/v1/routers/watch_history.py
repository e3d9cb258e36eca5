# app/api/v1/routers/watch_history.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🕘 StreamGate · Watch history                                            ║
# ║                                                                          ║
# ║  - GET    /watch-history                    → Most recent first          ║
# ║  - POST   /watch-history                    → Upsert progress            ║
# ║  - GET    /watch-history/continue-watching  → In-progress titles         ║
# ║  - DELETE /watch-history/{id}               → Forget one entry (204)     ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from fastapi.responses import JSONResponse

from app.api.http_utils import json_no_store
from app.core.dependencies import get_playback_ledger
from app.core.limiter import rate_limit
from app.core.security import get_current_account_id
from app.repositories.playback import PositionRecord
from app.schemas.playback import HistoryEntryOut, PositionUpdateInput
from app.services.playback_ledger import DEFAULT_CONTINUE_LIMIT, DEFAULT_HISTORY_LIMIT, PlaybackLedger

router = APIRouter(prefix="/watch-history", tags=["Watch history"])


def _entry(row: PositionRecord) -> dict:
    return HistoryEntryOut(
        id=row.id,
        content_id=row.content_id,
        content_type=row.content_type,
        profile=row.profile_id,
        series=row.series_id,
        season=row.season_id,
        watched_duration=row.watched_duration,
        total_duration=row.total_duration,
        progress=row.progress,
        completed=row.completed,
        device_id=row.device_id,
        last_watched_at=row.last_watched_at,
    ).model_dump(by_alias=True, mode="json")


@router.get("", response_model=List[HistoryEntryOut], summary="Watch history")
@rate_limit("60/minute")
async def list_history(
    request: Request,
    profile: Optional[str] = Query(None, max_length=64),
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=100),
    account_id: str = Depends(get_current_account_id),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> JSONResponse:
    rows = await ledger.history(account_id, profile_id=profile, limit=limit)
    return json_no_store([_entry(r) for r in rows])


@router.post("", response_model=HistoryEntryOut, summary="Record progress")
@rate_limit("120/minute")
async def update_history(
    request: Request,
    body: PositionUpdateInput,
    account_id: str = Depends(get_current_account_id),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> JSONResponse:
    row = await ledger.record(
        account_id,
        content_id=body.content_id,
        content_type=body.content_type.value,
        watched_duration=body.watched_duration,
        total_duration=body.total_duration,
        series_id=body.series,
        season_id=body.season,
        device_id=body.device_id,
        profile_id=body.profile,
    )
    return json_no_store(_entry(row))


@router.get("/continue-watching", response_model=List[HistoryEntryOut], summary="Continue watching")
@rate_limit("60/minute")
async def continue_watching(
    request: Request,
    profile: Optional[str] = Query(None, max_length=64),
    limit: int = Query(DEFAULT_CONTINUE_LIMIT, ge=1, le=100),
    account_id: str = Depends(get_current_account_id),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> JSONResponse:
    """Not completed and past the first few percent."""
    rows = await ledger.continue_watching(account_id, profile_id=profile, limit=limit)
    return json_no_store([_entry(r) for r in rows])


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a history entry")
@rate_limit("30/minute")
async def delete_history_entry(
    request: Request,
    entry_id: str = Path(..., min_length=1, max_length=64),
    account_id: str = Depends(get_current_account_id),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> Response:
    """404 when the entry does not exist or belongs to another account."""
    await ledger.forget(account_id, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
