# app/api/v1/routers/stream.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎬 StreamGate · Streaming                                                ║
# ║                                                                          ║
# ║ Endpoints (Bearer access token):                                         ║
# ║  - GET  /stream/movie/{id}          → Start movie stream                 ║
# ║  - GET  /stream/episode/{id}        → Start episode stream               ║
# ║  - POST /stream/stop                → Release stream slot(s)             ║
# ║  - GET  /stream/qualities           → Plan quality ladder + features     ║
# ║  - GET  /stream/subtitle/{id}       → Signed subtitle URL                ║
# ║  - GET  /stream/playback-position   → Resume point                       ║
# ║  - POST /stream/playback-position   → Record progress                    ║
# ╠──────────────────────────────────────────────────────────────────────────╣
# ║ Security & Ops                                                           ║
# ║  - Credential-bearing responses are `Cache-Control: no-store`.           ║
# ║  - Per-account rate limits (SlowAPI).                                    ║
# ║  - Missing `deviceId` → salted hash of client IP + user agent.           ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import JSONResponse

from app.api.http_utils import anon_device_id, get_client_ip, json_no_store
from app.core.dependencies import get_credential_issuer, get_playback_ledger, get_stream_controller
from app.core.limiter import rate_limit
from app.core.security import get_current_account_id
from app.repositories.playback import PositionRecord
from app.schemas.enums import ContentType, Quality
from app.schemas.playback import PositionOut, PositionUpdateInput
from app.schemas.streaming import (
    PlaybackPositionSummary,
    QualitiesResponse,
    StreamStartResponse,
    StreamStopInput,
    StreamStopResponse,
    SubtitleResponse,
)
from app.services.concurrency_guard import DeviceDescriptor
from app.services.credentials import CredentialIssuer
from app.services.playback_ledger import PlaybackLedger
from app.services.stream_controller import StreamController, StreamSession

router = APIRouter(
    prefix="/stream",
    tags=["Streaming"],
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        429: {"description": "Too Many Requests"},
    },
)

_ID = dict(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_\-]+$")


# ─────────────────────────────────────────────────────────────────────────────
# ⚙️ Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _device(request: Request, device_id: Optional[str]) -> DeviceDescriptor:
    return DeviceDescriptor(
        device_id=(device_id or "").strip() or anon_device_id(request),
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def _start_payload(session: StreamSession) -> StreamStartResponse:
    return StreamStartResponse(
        stream_id=session.stream_id,
        stream_url=session.stream_url,
        token=session.token,
        expires_at=session.expires_at,
        quality=session.quality,
        max_quality=session.max_quality,
        available_qualities=session.available_qualities,
        subtitles=session.subtitles,
        playback_position=PlaybackPositionSummary(resume_at=session.resume_at, progress=session.progress),
        plan_features=session.plan_features,
    )


def _position_payload(row: Optional[PositionRecord]) -> PositionOut:
    if row is None:
        return PositionOut()
    return PositionOut(
        watched_duration=row.watched_duration,
        total_duration=row.total_duration,
        progress=row.progress,
        resume_at=row.watched_duration,
        completed=row.completed,
        last_watched_at=row.last_watched_at,
    )


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ▶️ Start                                                                 ║
# ╚══════════════════════════════════════════════════════════════════════════╝

@router.get("/movie/{movie_id}", response_model=StreamStartResponse, summary="Start streaming a movie")
@rate_limit("30/minute")
async def start_movie_stream(
    request: Request,
    movie_id: str = Path(..., **_ID),
    device_id: Optional[str] = Query(None, alias="deviceId", max_length=128),
    quality: Optional[str] = Query(None, max_length=16),
    account_id: str = Depends(get_current_account_id),
    controller: StreamController = Depends(get_stream_controller),
) -> JSONResponse:
    """
    ▶️ Admit a movie stream and hand back a short-lived playback credential.

    Steps
    -----
    1) Active subscription → plan policy.
    2) Clamp the requested quality to the plan cap.
    3) Catalog lookup + media key (404 before any slot is taken).
    4) Device + stream admission (device/stream caps).
    5) Signed URL + streaming token sharing one expiry.
    """
    session = await controller.start(
        account_id,
        content_id=movie_id,
        content_type=ContentType.MOVIE,
        device=_device(request, device_id),
        quality=quality,
    )
    return json_no_store(_start_payload(session))


@router.get("/episode/{episode_id}", response_model=StreamStartResponse, summary="Start streaming an episode")
@rate_limit("30/minute")
async def start_episode_stream(
    request: Request,
    episode_id: str = Path(..., **_ID),
    device_id: Optional[str] = Query(None, alias="deviceId", max_length=128),
    quality: Optional[str] = Query(None, max_length=16),
    account_id: str = Depends(get_current_account_id),
    controller: StreamController = Depends(get_stream_controller),
) -> JSONResponse:
    """Same as the movie flow; the token also carries series and season ids."""
    session = await controller.start(
        account_id,
        content_id=episode_id,
        content_type=ContentType.EPISODE,
        device=_device(request, device_id),
        quality=quality,
    )
    return json_no_store(_start_payload(session))


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ⏹️ Stop                                                                  ║
# ╚══════════════════════════════════════════════════════════════════════════╝

@router.post("/stop", response_model=StreamStopResponse, summary="Stop a stream")
@rate_limit("60/minute")
async def stop_stream(
    request: Request,
    body: StreamStopInput,
    account_id: str = Depends(get_current_account_id),
    controller: StreamController = Depends(get_stream_controller),
) -> JSONResponse:
    """Release every slot held for (contentId, deviceId). Nothing to release is still 200."""
    released = await controller.stop(account_id, content_id=body.content_id, device_id=body.device_id)
    return json_no_store(StreamStopResponse(released=released))


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎚️ Plan qualities                                                        ║
# ╚══════════════════════════════════════════════════════════════════════════╝

@router.get("/qualities", response_model=QualitiesResponse, summary="Qualities allowed by the current plan")
@rate_limit("60/minute")
async def get_qualities(
    request: Request,
    account_id: str = Depends(get_current_account_id),
    controller: StreamController = Depends(get_stream_controller),
) -> JSONResponse:
    policy = (await controller.plan(account_id)).policy
    return json_no_store(
        QualitiesResponse(
            max_quality=policy.max_quality,
            available_qualities=Quality.up_to(policy.max_quality),
            plan_name=policy.name,
            plan_features=policy.features(),
        )
    )


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 💬 Subtitles                                                             ║
# ╚══════════════════════════════════════════════════════════════════════════╝

@router.get("/subtitle/{subtitle_id}", response_model=SubtitleResponse, summary="Signed subtitle URL")
@rate_limit("60/minute")
async def get_subtitle(
    request: Request,
    subtitle_id: str = Path(..., **_ID),
    language: Optional[str] = Query(None, max_length=16),
    account_id: str = Depends(get_current_account_id),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
) -> JSONResponse:
    signed = issuer.subtitle_url(subtitle_id)
    return json_no_store(SubtitleResponse(subtitle_url=signed.url, language=language, expires_at=signed.expires_at))


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ ⏱️ Playback position                                                     ║
# ╚══════════════════════════════════════════════════════════════════════════╝

@router.get("/playback-position", response_model=PositionOut, summary="Resume point for a title")
@rate_limit("120/minute")
async def get_playback_position(
    request: Request,
    content_id: str = Query(..., alias="contentId", **_ID),
    content_type: ContentType = Query(..., alias="contentType"),
    account_id: str = Depends(get_current_account_id),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> JSONResponse:
    """Never-watched content answers with zeros and `lastWatchedAt: null`."""
    row = await ledger.position(account_id, content_id, content_type.value)
    return json_no_store(_position_payload(row))


@router.post("/playback-position", response_model=PositionOut, summary="Record playback progress")
@rate_limit("120/minute")
async def update_playback_position(
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
    return json_no_store(_position_payload(row))


__all__ = ["router"]
