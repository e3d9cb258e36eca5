from __future__ import annotations

"""
Entitlement resolver.

Fails closed: an account may stream only while it holds a subscription whose
status is `active` *and* whose end date is still in the future. The end date
is re-checked on every call; nothing flips statuses in the background.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
import logging

from app.core.exceptions import EntitlementError
from app.repositories.subscriptions import SubscriptionRecord, SubscriptionRepositoryProtocol
from app.schemas.enums import SubscriptionStatus
from app.services.plan_policy import PlanPolicy

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Entitlement:
    subscription: SubscriptionRecord
    policy: PlanPolicy


class EntitlementResolver:
    def __init__(
        self,
        subscriptions: SubscriptionRepositoryProtocol,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.subscriptions = subscriptions
        self.clock = clock

    async def resolve(self, account_id: str) -> Entitlement:
        sub = await self.subscriptions.find_active(account_id)
        if sub is None or sub.status != SubscriptionStatus.ACTIVE.value:
            raise EntitlementError()
        if sub.end_date <= self.clock():
            logger.info("Subscription %s for account=%s lapsed at %s", sub.id, account_id, sub.end_date)
            raise EntitlementError("Subscription expired")
        return Entitlement(subscription=sub, policy=PlanPolicy.from_plan(sub.plan))


__all__ = ["Entitlement", "EntitlementResolver", "utcnow"]
