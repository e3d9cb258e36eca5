# app/core/dependencies.py
from __future__ import annotations

"""
Request-scoped service wiring — StreamGate
==========================================

Builds the playback services from their repositories and collaborators.
Routers depend on these factories only; tests swap the *repository* and
*storage* dependencies (`app.dependency_overrides`) and get the real services
on top of in-memory state.

All repositories resolved within one request share the same `AsyncSession`
(FastAPI caches `get_async_db` per request).
"""

from fastapi import Depends

from app.core.storage import StorageProtocol, get_storage
from app.repositories.accounts import AccountRepositoryProtocol, get_account_repository
from app.repositories.catalog import CatalogRepositoryProtocol, get_catalog_repository
from app.repositories.playback import PlaybackRepositoryProtocol, get_playback_repository
from app.repositories.subscriptions import SubscriptionRepositoryProtocol, get_subscription_repository
from app.services.concurrency_guard import ConcurrencyGuard
from app.services.credentials import CredentialIssuer
from app.services.entitlement import EntitlementResolver
from app.services.playback_ledger import PlaybackLedger
from app.services.stream_controller import StreamController

__all__ = [
    "get_entitlement_resolver",
    "get_concurrency_guard",
    "get_credential_issuer",
    "get_playback_ledger",
    "get_stream_controller",
]


def get_entitlement_resolver(
    subscriptions: SubscriptionRepositoryProtocol = Depends(get_subscription_repository),
) -> EntitlementResolver:
    return EntitlementResolver(subscriptions)


def get_concurrency_guard(
    accounts: AccountRepositoryProtocol = Depends(get_account_repository),
) -> ConcurrencyGuard:
    return ConcurrencyGuard(accounts)


def get_credential_issuer(storage: StorageProtocol = Depends(get_storage)) -> CredentialIssuer:
    return CredentialIssuer(storage)


def get_playback_ledger(
    repo: PlaybackRepositoryProtocol = Depends(get_playback_repository),
) -> PlaybackLedger:
    return PlaybackLedger(repo)


def get_stream_controller(
    entitlements: EntitlementResolver = Depends(get_entitlement_resolver),
    guard: ConcurrencyGuard = Depends(get_concurrency_guard),
    catalog: CatalogRepositoryProtocol = Depends(get_catalog_repository),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    ledger: PlaybackLedger = Depends(get_playback_ledger),
) -> StreamController:
    return StreamController(
        entitlements=entitlements,
        guard=guard,
        catalog=catalog,
        issuer=issuer,
        ledger=ledger,
    )
