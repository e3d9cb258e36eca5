from __future__ import annotations

"""Read-only access to subscriptions and their plans (billing owns the writes)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.subscription import Subscription
from app.db.session import get_async_db
from app.schemas.enums import SubscriptionStatus


@dataclass(frozen=True)
class PlanRecord:
    id: str
    name: str
    quality: str = "1080p"
    max_devices: int = 5
    max_streams: int = 3
    ad_free: bool = True
    download_allowed: bool = False
    price: Decimal = Decimal("0")
    currency: str = "INR"
    duration_days: int = 30


@dataclass(frozen=True)
class SubscriptionRecord:
    id: str
    account_id: str
    status: str
    start_date: datetime
    end_date: datetime
    plan: PlanRecord
    auto_renew: bool = False


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; rows are always written in UTC.
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class SubscriptionRepositoryProtocol(ABC):
    @abstractmethod
    async def find_active(self, account_id: str) -> Optional[SubscriptionRecord]:
        """Most recent subscription whose *status* is active (end date is not checked here)."""
        raise NotImplementedError


class MemorySubscriptionRepository(SubscriptionRepositoryProtocol):
    def __init__(self) -> None:
        self._by_account: Dict[str, List[SubscriptionRecord]] = {}

    def add(self, record: SubscriptionRecord) -> SubscriptionRecord:
        self._by_account.setdefault(record.account_id, []).append(record)
        return record

    async def find_active(self, account_id: str) -> Optional[SubscriptionRecord]:
        active = [s for s in self._by_account.get(account_id, []) if s.status == SubscriptionStatus.ACTIVE.value]
        if not active:
            return None
        return max(active, key=lambda s: s.end_date)


class SqlAlchemySubscriptionRepository(SubscriptionRepositoryProtocol):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_active(self, account_id: str) -> Optional[SubscriptionRecord]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.account_id == account_id, Subscription.status == SubscriptionStatus.ACTIVE.value)
            .order_by(Subscription.end_date.desc())
            .limit(1)
        )
        row = result.scalars().first()
        if row is None:
            return None
        plan = row.plan
        return SubscriptionRecord(
            id=row.id,
            account_id=row.account_id,
            status=row.status,
            start_date=_aware(row.start_date),
            end_date=_aware(row.end_date),
            auto_renew=bool(row.auto_renew),
            plan=PlanRecord(
                id=plan.id,
                name=plan.name,
                quality=plan.quality,
                max_devices=plan.max_devices,
                max_streams=plan.max_streams,
                ad_free=bool(plan.ad_free),
                download_allowed=bool(plan.download_allowed),
                price=Decimal(plan.price),
                currency=plan.currency,
                duration_days=plan.duration_days,
            ),
        )


def get_subscription_repository(db: AsyncSession = Depends(get_async_db)) -> SubscriptionRepositoryProtocol:
    return SqlAlchemySubscriptionRepository(db)


__all__ = [
    "PlanRecord",
    "SubscriptionRecord",
    "SubscriptionRepositoryProtocol",
    "MemorySubscriptionRepository",
    "SqlAlchemySubscriptionRepository",
    "get_subscription_repository",
]
