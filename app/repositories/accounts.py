from __future__ import annotations

"""
Account aggregate storage.

The only writers are `app.services.concurrency_guard`; they read a snapshot
(with its revision), compute the next registries in memory, and call
`compare_and_swap`, which succeeds only if nobody else wrote in between.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.account import Account
from app.db.session import get_async_db


@dataclass
class Device:
    device_id: str
    device_name: str = "Unknown Device"
    device_type: str = "web"
    last_active: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["last_active"] = self.last_active.isoformat() if self.last_active else None
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Device":
        last = d.get("last_active")
        return cls(
            device_id=d["device_id"],
            device_name=d.get("device_name") or "Unknown Device",
            device_type=d.get("device_type") or "web",
            last_active=datetime.fromisoformat(last) if last else None,
            ip_address=d.get("ip_address"),
            user_agent=d.get("user_agent"),
        )


@dataclass
class ActiveStream:
    stream_id: str
    content_id: str
    content_type: str
    device_id: str
    started_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["started_at"] = self.started_at.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActiveStream":
        return cls(
            stream_id=d["stream_id"],
            content_id=d["content_id"],
            content_type=d["content_type"],
            device_id=d["device_id"],
            started_at=datetime.fromisoformat(d["started_at"]),
        )


@dataclass
class AccountSnapshot:
    account_id: str
    revision: int = 0
    devices: List[Device] = field(default_factory=list)
    streams: List[ActiveStream] = field(default_factory=list)


def _decode(raw_devices: Any, raw_streams: Any) -> Tuple[List[Device], List[ActiveStream]]:
    return (
        [Device.from_dict(d) for d in (raw_devices or [])],
        [ActiveStream.from_dict(s) for s in (raw_streams or [])],
    )


class AccountRepositoryProtocol(ABC):
    @abstractmethod
    async def load(self, account_id: str) -> AccountSnapshot:
        """Current snapshot; an unseen account starts empty at revision 0."""
        raise NotImplementedError

    @abstractmethod
    async def compare_and_swap(
        self,
        account_id: str,
        expected_revision: int,
        devices: List[Device],
        streams: List[ActiveStream],
    ) -> bool:
        """Replace both registries iff the stored revision still equals `expected_revision`."""
        raise NotImplementedError


class MemoryAccountRepository(AccountRepositoryProtocol):
    def __init__(self) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}

    def _row(self, account_id: str) -> Dict[str, Any]:
        return self._rows.setdefault(account_id, {"revision": 0, "devices": [], "active_streams": []})

    async def load(self, account_id: str) -> AccountSnapshot:
        row = self._row(account_id)
        devices, streams = _decode(row["devices"], row["active_streams"])
        return AccountSnapshot(account_id=account_id, revision=row["revision"], devices=devices, streams=streams)

    async def compare_and_swap(self, account_id, expected_revision, devices, streams) -> bool:
        row = self._row(account_id)
        if row["revision"] != expected_revision:
            return False
        row["devices"] = [d.to_dict() for d in devices]
        row["active_streams"] = [s.to_dict() for s in streams]
        row["revision"] = expected_revision + 1
        return True


class SqlAlchemyAccountRepository(AccountRepositoryProtocol):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _select(self, account_id: str):
        # Column select bypasses the identity map, so retries always see fresh rows.
        result = await self.db.execute(
            select(Account.revision, Account.devices, Account.active_streams).where(Account.id == account_id)
        )
        return result.first()

    async def load(self, account_id: str) -> AccountSnapshot:
        row = await self._select(account_id)
        if row is None:
            try:
                await self.db.execute(
                    insert(Account).values(id=account_id, revision=0, devices=[], active_streams=[])
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
            row = await self._select(account_id)
        devices, streams = _decode(row.devices, row.active_streams)
        return AccountSnapshot(account_id=account_id, revision=row.revision, devices=devices, streams=streams)

    async def compare_and_swap(self, account_id, expected_revision, devices, streams) -> bool:
        result = await self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.revision == expected_revision)
            .values(
                devices=[d.to_dict() for d in devices],
                active_streams=[s.to_dict() for s in streams],
                revision=expected_revision + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True


def get_account_repository(db: AsyncSession = Depends(get_async_db)) -> AccountRepositoryProtocol:
    return SqlAlchemyAccountRepository(db)


__all__ = [
    "Device",
    "ActiveStream",
    "AccountSnapshot",
    "AccountRepositoryProtocol",
    "MemoryAccountRepository",
    "SqlAlchemyAccountRepository",
    "get_account_repository",
]
