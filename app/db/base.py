# app/db/base.py
"""
StreamGate — SQLAlchemy Base registry
=====================================

Import all ORM models so their tables are registered on `Base.metadata`
(Alembic autogeneration and test `create_all` rely on this).

Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# Accounts & billing reference data
from app.db.models.account import Account
from app.db.models.plan import Plan
from app.db.models.subscription import Subscription

# Catalog read model
from app.db.models.content import Content

# Playback
from app.db.models.playback_position import PlaybackPosition

__all__ = [
    "Base",
    "Account",
    "Plan",
    "Subscription",
    "Content",
    "PlaybackPosition",
]
