from __future__ import annotations

"""
Plan policy table
=================

A subscription plan boils down to five numbers/flags the playback path cares
about. `PlanPolicy` is that projection; it is immutable and cheap to pass
around. Column defaults mirror the plan schema (1080p, 5 devices, 3 streams).
"""

from dataclasses import dataclass
from typing import Any, Dict

from app.repositories.subscriptions import PlanRecord
from app.schemas.enums import Quality


@dataclass(frozen=True)
class PlanPolicy:
    name: str
    max_quality: Quality = Quality.P1080
    max_devices: int = 5
    max_streams: int = 3
    ad_free: bool = True
    download_allowed: bool = False

    @classmethod
    def from_plan(cls, plan: PlanRecord) -> "PlanPolicy":
        return cls(
            name=plan.name,
            max_quality=Quality.parse(plan.quality) or Quality.P1080,
            max_devices=plan.max_devices,
            max_streams=plan.max_streams,
            ad_free=plan.ad_free,
            download_allowed=plan.download_allowed,
        )

    def features(self) -> Dict[str, Any]:
        """Wire shape used by the `planFeatures` member of stream responses."""
        return {
            "quality": self.max_quality.value,
            "maxDevices": self.max_devices,
            "maxStreams": self.max_streams,
            "adFree": self.ad_free,
            "downloadAllowed": self.download_allowed,
        }


__all__ = ["PlanPolicy"]
