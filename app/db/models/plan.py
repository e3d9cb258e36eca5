from __future__ import annotations

"""
💳 StreamGate — Plan (reference data)

Immutable plan catalogue maintained by the billing side. The controller only
reads the policy columns: `quality`, `max_devices`, `max_streams`, `ad_free`,
`download_allowed`.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, text

from app.db.base_class import Base, StringPKMixin, TimestampMixin


class Plan(StringPKMixin, TimestampMixin, Base):
    __tablename__ = "plan"

    name = Column(String(64), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="INR", server_default=text("'INR'"))
    duration_days = Column(Integer, nullable=False, default=30, server_default=text("30"))

    quality = Column(String(8), nullable=False, default="1080p", server_default=text("'1080p'"))
    max_devices = Column(Integer, nullable=False, default=5, server_default=text("5"))
    max_streams = Column(Integer, nullable=False, default=3, server_default=text("3"))
    ad_free = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    download_allowed = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))

    __table_args__ = (
        CheckConstraint("quality IN ('480p','720p','1080p','4K')", name="quality_tier"),
        CheckConstraint("max_devices >= 1", name="max_devices_pos"),
        CheckConstraint("max_streams >= 1", name="max_streams_pos"),
        CheckConstraint("duration_days >= 1", name="duration_pos"),
    )
