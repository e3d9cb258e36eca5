from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import conint, constr

from app.schemas.base import CamelModel
from app.schemas.enums import ContentType


class PositionUpdateInput(CamelModel):
    content_id: constr(strip_whitespace=True, min_length=1, max_length=64)
    content_type: ContentType
    watched_duration: Optional[conint(ge=0)] = None
    total_duration: Optional[conint(ge=0)] = None
    series: Optional[constr(strip_whitespace=True, max_length=64)] = None
    season: Optional[constr(strip_whitespace=True, max_length=64)] = None
    device_id: Optional[constr(strip_whitespace=True, max_length=128)] = None
    profile: Optional[constr(strip_whitespace=True, max_length=64)] = None


class PositionOut(CamelModel):
    watched_duration: int = 0
    total_duration: int = 0
    progress: int = 0
    resume_at: int = 0
    completed: bool = False
    last_watched_at: Optional[datetime] = None


class HistoryEntryOut(CamelModel):
    id: str
    content_id: str
    content_type: ContentType
    profile: Optional[str] = None
    series: Optional[str] = None
    season: Optional[str] = None
    watched_duration: int
    total_duration: int
    progress: int
    completed: bool
    device_id: Optional[str] = None
    last_watched_at: Optional[datetime] = None
