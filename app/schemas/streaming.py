from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, constr

from app.schemas.base import CamelModel
from app.schemas.enums import Quality


class PlaybackPositionSummary(CamelModel):
    resume_at: int = 0
    progress: int = 0


class StreamStartResponse(CamelModel):
    stream_id: str
    stream_url: str
    token: str
    expires_at: datetime
    quality: Quality
    max_quality: Quality
    available_qualities: List[Quality]
    subtitles: List[Dict[str, Any]] = []
    playback_position: PlaybackPositionSummary
    plan_features: Dict[str, Any]


class StreamStopInput(CamelModel):
    content_id: constr(strip_whitespace=True, min_length=1, max_length=64)
    device_id: constr(strip_whitespace=True, min_length=1, max_length=128)


class StreamStopResponse(CamelModel):
    released: int = Field(..., description="Number of active-stream entries removed (0 is not an error).")


class QualitiesResponse(CamelModel):
    max_quality: Quality
    available_qualities: List[Quality]
    plan_name: str
    plan_features: Dict[str, Any]


class SubtitleResponse(CamelModel):
    subtitle_url: str
    language: Optional[str] = None
    expires_at: datetime
