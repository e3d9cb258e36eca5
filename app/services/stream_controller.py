from __future__ import annotations

"""
Stream controller
=================

Orchestrates stream start/stop for movies and episodes:

    entitlement → quality negotiation → catalog lookup + media key
        → concurrency admission → credential issuance

Everything that can fail without side effects (subscription, quality label,
missing content or rendition, an object key storage cannot sign) is checked
before the admission write, so a rejected request never holds a stream slot.
If issuing the credential fails after admission, the new entry is discarded
before the error propagates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.exceptions import NotFoundError
from app.repositories.catalog import CatalogRepositoryProtocol, ContentRecord
from app.schemas.enums import ContentType, Quality
from app.services.concurrency_guard import ConcurrencyGuard, DeviceDescriptor
from app.services.credentials import CredentialIssuer, SignedUrl
from app.services.entitlement import Entitlement, EntitlementResolver
from app.services.media_keys import resolve_media_key
from app.services.playback_ledger import PlaybackLedger
from app.services.quality import negotiate


@dataclass(frozen=True)
class StreamSession:
    stream_id: str
    stream_url: str
    token: str
    expires_at: datetime
    quality: Quality
    max_quality: Quality
    available_qualities: List[Quality]
    plan_features: Dict[str, Any]
    subtitles: List[Dict[str, Any]] = field(default_factory=list)
    resume_at: int = 0
    progress: int = 0


class StreamController:
    def __init__(
        self,
        *,
        entitlements: EntitlementResolver,
        guard: ConcurrencyGuard,
        catalog: CatalogRepositoryProtocol,
        issuer: CredentialIssuer,
        ledger: PlaybackLedger,
    ) -> None:
        self.entitlements = entitlements
        self.guard = guard
        self.catalog = catalog
        self.issuer = issuer
        self.ledger = ledger

    async def _content(self, content_id: str, content_type: ContentType) -> ContentRecord:
        content = await self.catalog.get_content(content_id, content_type.value)
        if content is None or not content.is_active:
            label = "Movie" if content_type is ContentType.MOVIE else "Episode"
            raise NotFoundError(f"{label} not found")
        return content

    async def start(
        self,
        account_id: str,
        *,
        content_id: str,
        content_type: ContentType,
        device: DeviceDescriptor,
        quality: Optional[str] = None,
    ) -> StreamSession:
        entitlement = await self.entitlements.resolve(account_id)
        policy = entitlement.policy
        negotiated = negotiate(quality, policy.max_quality)

        content = await self._content(content_id, content_type)
        object_key = self.issuer.check_key(resolve_media_key(content, negotiated.serving).object_key())

        admission = await self.guard.admit_stream(
            account_id,
            policy,
            device,
            content_id=content.id,
            content_type=content_type.value,
        )

        try:
            grant = self.issuer.issue(
                object_key=object_key,
                account_id=account_id,
                content_id=content.id,
                content_type=content_type.value,
                stream_id=admission.stream_id,
                device_id=device.device_id,
                quality=negotiated.serving.value,
                series_id=content.series_id if content_type is ContentType.EPISODE else None,
                season_id=content.season_id if content_type is ContentType.EPISODE else None,
            )
        except Exception:
            await self.guard.discard_stream(account_id, admission.stream_id)
            raise

        position = await self.ledger.position(account_id, content.id, content_type.value)
        return StreamSession(
            stream_id=admission.stream_id,
            stream_url=grant.stream_url,
            token=grant.token,
            expires_at=grant.expires_at,
            quality=negotiated.serving,
            max_quality=policy.max_quality,
            available_qualities=negotiated.allowed,
            plan_features=policy.features(),
            subtitles=list(content.subtitles or []),
            resume_at=position.watched_duration if position else 0,
            progress=position.progress if position else 0,
        )

    async def stop(self, account_id: str, *, content_id: str, device_id: str) -> int:
        return await self.guard.release_stream(account_id, content_id=content_id, device_id=device_id)

    async def plan(self, account_id: str) -> Entitlement:
        return await self.entitlements.resolve(account_id)

    def subtitle(self, subtitle_id: str) -> SignedUrl:
        return self.issuer.subtitle_url(subtitle_id)


__all__ = ["StreamController", "StreamSession"]
