from __future__ import annotations

"""
⏯️ StreamGate — PlaybackPosition (per-account resume state)
===========================================================

One row per `(account_id, content_id, content_type)`; the unique constraint is
what makes the ledger's upsert idempotent. `progress` is a 0–100 integer and
`completed` is sticky once set.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)

from app.db.base_class import Base, StringPKMixin, TimestampMixin


class PlaybackPosition(StringPKMixin, TimestampMixin, Base):
    __tablename__ = "playback_position"

    account_id = Column(String(64), nullable=False, index=True)
    profile_id = Column(String(64), nullable=True)

    content_id = Column(String(64), nullable=False)
    content_type = Column(String(16), nullable=False)
    series_id = Column(String(64), nullable=True)
    season_id = Column(String(64), nullable=True)

    watched_duration = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_duration = Column(Integer, nullable=False, default=0, server_default=text("0"))
    progress = Column(Integer, nullable=False, default=0, server_default=text("0"))
    completed = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    device_id = Column(String(128), nullable=True)
    last_watched_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("watched_duration >= 0", name="watched_nonneg"),
        CheckConstraint("total_duration >= 0", name="total_nonneg"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="progress_range"),
        UniqueConstraint("account_id", "content_id", "content_type", name="uq_playback_position_account_content"),
        Index("ix_playback_position_account_watched", "account_id", "last_watched_at"),
    )
