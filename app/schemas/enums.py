from __future__ import annotations

"""
Central enum definitions used across StreamGate.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (stored in rows and tokens).
"""

from enum import Enum as PyEnum
from typing import List, Optional


# ──────────────────────────────────────────────────────────────
# Renditions
# ──────────────────────────────────────────────────────────────
class Quality(str, PyEnum):
    """Rendition tiers, declared in ascending order (480p < 720p < 1080p < 4K)."""
    P480 = "480p"
    P720 = "720p"
    P1080 = "1080p"
    UHD_4K = "4K"

    @property
    def rank(self) -> int:
        return _QUALITY_ORDER.index(self)

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional["Quality"]:
        """Map a wire label to a tier (case-insensitive); None passes through.

        Raises ValueError for unknown labels.
        """
        if label is None:
            return None
        norm = str(label).strip().lower()
        for q in cls:
            if q.value.lower() == norm:
                return q
        raise ValueError(f"unknown quality: {label!r}")

    @classmethod
    def up_to(cls, cap: "Quality") -> List["Quality"]:
        """Every tier with rank ≤ cap, ascending."""
        return [q for q in _QUALITY_ORDER if q.rank <= cap.rank]


_QUALITY_ORDER: List[Quality] = list(Quality)


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class ContentType(str, PyEnum):
    MOVIE = "movie"
    EPISODE = "episode"


# ──────────────────────────────────────────────────────────────
# Accounts & devices
# ──────────────────────────────────────────────────────────────
class DeviceClass(str, PyEnum):
    WEB = "web"
    MOBILE = "mobile"
    TV = "tv"
    TABLET = "tablet"


class SubscriptionStatus(str, PyEnum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


__all__ = ["Quality", "ContentType", "DeviceClass", "SubscriptionStatus"]
