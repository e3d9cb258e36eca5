from __future__ import annotations

"""
Concurrency guard
=================

Owns every mutation of an account's device registry and active-stream
registry. Each mutation is a read → validate → conditional write cycle:

    snapshot = load(account)                 # includes revision r
    next = mutate(snapshot)                  # pure; may raise a limit error
    compare_and_swap(account, r, next)       # succeeds only if still at r

A failed swap means another request wrote first; the cycle repeats against a
fresh snapshot, up to `max_attempts` times. Limits are therefore checked
against the state that actually gets written, which keeps
`len(devices) <= max_devices` and `len(streams) <= max_streams` under races.
No lock is held across round trips.

Stream entries older than the credential TTL are dropped whenever a stream is
admitted or a device registers, so abandoned sessions free their slot once their credential could
no longer be used anyway.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple, TypeVar
from uuid import uuid4
import asyncio
import logging

from app.core.config import settings
from app.core.exceptions import ConcurrencyLimitError
from app.repositories.accounts import AccountRepositoryProtocol, AccountSnapshot, ActiveStream, Device
from app.services.entitlement import utcnow
from app.services.plan_policy import PlanPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (devices, streams, result); `None` registries mean "nothing to write"
_Mutation = Tuple[Optional[List[Device]], Optional[List[ActiveStream]], T]


@dataclass(frozen=True)
class DeviceDescriptor:
    device_id: str
    device_name: Optional[str] = None
    device_type: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class Admission:
    stream_id: str
    device: Device
    started_at: datetime


class ConcurrencyGuard:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        *,
        stream_ttl_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
        backoff_ms: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.accounts = accounts
        self.stream_ttl = timedelta(seconds=stream_ttl_seconds or settings.STREAM_TOKEN_TTL_SECONDS)
        self.max_attempts = max_attempts or settings.ADMISSION_MAX_ATTEMPTS
        self.backoff_ms = settings.ADMISSION_RETRY_BACKOFF_MS if backoff_ms is None else backoff_ms
        self.clock = clock

    # ─────────────────────────────────────────────────────────
    # Optimistic write loop
    # ─────────────────────────────────────────────────────────
    async def _mutate(self, account_id: str, fn: Callable[[AccountSnapshot], _Mutation]) -> T:
        for attempt in range(1, self.max_attempts + 1):
            snapshot = await self.accounts.load(account_id)
            devices, streams, result = fn(snapshot)
            if devices is None and streams is None:
                return result
            ok = await self.accounts.compare_and_swap(
                account_id,
                snapshot.revision,
                snapshot.devices if devices is None else devices,
                snapshot.streams if streams is None else streams,
            )
            if ok:
                return result
            logger.debug("Revision conflict on account=%s (attempt %d/%d)", account_id, attempt, self.max_attempts)
            if self.backoff_ms:
                await asyncio.sleep(self.backoff_ms * attempt / 1000.0)
        logger.warning("Gave up after %d conflicting writes on account=%s", self.max_attempts, account_id)
        raise ConcurrencyLimitError(ConcurrencyLimitError.CONTENTION)

    # ─────────────────────────────────────────────────────────
    # Pure registry transitions
    # ─────────────────────────────────────────────────────────
    def _upsert_device(
        self, devices: List[Device], descriptor: DeviceDescriptor, policy: PlanPolicy, now: datetime
    ) -> Tuple[List[Device], Device, bool]:
        """Refresh a known device or append a new one within the device cap."""
        for i, existing in enumerate(devices):
            if existing.device_id == descriptor.device_id:
                refreshed = replace(
                    existing,
                    last_active=now,
                    ip_address=descriptor.ip_address or existing.ip_address,
                    user_agent=descriptor.user_agent or existing.user_agent,
                )
                return devices[:i] + [refreshed] + devices[i + 1:], refreshed, False

        if len(devices) >= policy.max_devices:
            raise ConcurrencyLimitError(ConcurrencyLimitError.DEVICE_LIMIT, limit=policy.max_devices)

        created = Device(
            device_id=descriptor.device_id,
            device_name=descriptor.device_name or "Unknown Device",
            device_type=descriptor.device_type or "web",
            last_active=now,
            ip_address=descriptor.ip_address,
            user_agent=descriptor.user_agent,
        )
        return devices + [created], created, True

    def _live_streams(self, streams: List[ActiveStream], now: datetime) -> List[ActiveStream]:
        cutoff = now - self.stream_ttl
        return [s for s in streams if s.started_at > cutoff]

    # ─────────────────────────────────────────────────────────
    # Public operations
    # ─────────────────────────────────────────────────────────
    async def admit_stream(
        self,
        account_id: str,
        policy: PlanPolicy,
        descriptor: DeviceDescriptor,
        *,
        content_id: str,
        content_type: str,
    ) -> Admission:
        """Register the device if needed and reserve a stream slot, atomically."""

        def _fn(snapshot: AccountSnapshot) -> _Mutation:
            now = self.clock()
            devices, device, _ = self._upsert_device(snapshot.devices, descriptor, policy, now)
            streams = self._live_streams(snapshot.streams, now)
            if len(streams) >= policy.max_streams:
                raise ConcurrencyLimitError(ConcurrencyLimitError.STREAM_LIMIT, limit=policy.max_streams)
            entry = ActiveStream(
                stream_id=str(uuid4()),
                content_id=content_id,
                content_type=content_type,
                device_id=descriptor.device_id,
                started_at=now,
            )
            return devices, streams + [entry], Admission(stream_id=entry.stream_id, device=device, started_at=now)

        admission = await self._mutate(account_id, _fn)
        logger.info(
            "Admitted stream %s account=%s content=%s:%s device=%s",
            admission.stream_id, account_id, content_type, content_id, descriptor.device_id,
        )
        return admission

    async def release_stream(self, account_id: str, *, content_id: str, device_id: str) -> int:
        """Drop every entry for (content, device). Releasing nothing is not an error."""

        def _fn(snapshot: AccountSnapshot) -> _Mutation:
            kept = [s for s in snapshot.streams if not (s.content_id == content_id and s.device_id == device_id)]
            released = len(snapshot.streams) - len(kept)
            if not released:
                return None, None, 0
            return None, kept, released

        released = await self._mutate(account_id, _fn)
        if released:
            logger.info("Released %d stream(s) account=%s content=%s device=%s", released, account_id, content_id, device_id)
        return released

    async def discard_stream(self, account_id: str, stream_id: str) -> bool:
        """Drop one entry by id; used when a stream was admitted but never handed out."""

        def _fn(snapshot: AccountSnapshot) -> _Mutation:
            kept = [s for s in snapshot.streams if s.stream_id != stream_id]
            if len(kept) == len(snapshot.streams):
                return None, None, False
            return None, kept, True

        discarded = await self._mutate(account_id, _fn)
        if discarded:
            logger.info("Discarded stream %s account=%s", stream_id, account_id)
        return discarded

    async def register_device(self, account_id: str, policy: PlanPolicy, descriptor: DeviceDescriptor) -> Tuple[Device, bool]:
        """Returns (device, created)."""

        def _fn(snapshot: AccountSnapshot) -> _Mutation:
            now = self.clock()
            devices, device, created = self._upsert_device(snapshot.devices, descriptor, policy, now)
            streams = self._live_streams(snapshot.streams, now)
            return devices, streams if len(streams) != len(snapshot.streams) else None, (device, created)

        return await self._mutate(account_id, _fn)

    async def remove_device(self, account_id: str, device_id: str) -> bool:
        """Forget a device and any streams it holds. Unknown ids are a no-op."""

        def _fn(snapshot: AccountSnapshot) -> _Mutation:
            devices = [d for d in snapshot.devices if d.device_id != device_id]
            if len(devices) == len(snapshot.devices):
                return None, None, False
            streams = [s for s in snapshot.streams if s.device_id != device_id]
            return devices, streams, True

        removed = await self._mutate(account_id, _fn)
        if removed:
            logger.info("Removed device %s from account=%s", device_id, account_id)
        return removed

    async def list_devices(self, account_id: str) -> List[Device]:
        snapshot = await self.accounts.load(account_id)
        return list(snapshot.devices)


__all__ = ["ConcurrencyGuard", "DeviceDescriptor", "Admission"]
