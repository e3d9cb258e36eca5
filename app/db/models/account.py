from __future__ import annotations

"""
👤 StreamGate — Account aggregate
=================================

One row per account. The device registry and the active-stream registry are
embedded JSON lists so that a single conditional UPDATE can replace both.

Concurrency
-----------
`revision` is bumped by every registry write. Writers issue
``UPDATE account SET … , revision = r + 1 WHERE id = :id AND revision = r``
and treat ``rowcount == 0`` as a lost race (see `app.services.concurrency_guard`).
Nothing else writes `devices` / `active_streams`.

Entry shapes
------------
devices:        {"device_id", "device_name", "device_type", "last_active",
                 "ip_address", "user_agent"}
active_streams: {"stream_id", "content_id", "content_type", "device_id",
                 "started_at"}
Timestamps inside the lists are ISO-8601 UTC strings.
"""

from sqlalchemy import CheckConstraint, Column, Integer, JSON, String, text

from app.db.base_class import Base, StringPKMixin, TimestampMixin


class Account(StringPKMixin, TimestampMixin, Base):
    __tablename__ = "account"

    email = Column(String(255), nullable=True, unique=True)

    devices = Column(JSON, nullable=False, default=list, doc="Registered devices (ordered by first sight).")
    active_streams = Column(JSON, nullable=False, default=list, doc="Admitted, not-yet-released streams.")

    revision = Column(Integer, nullable=False, default=0, server_default=text("0"))

    __table_args__ = (
        CheckConstraint("revision >= 0", name="revision_nonneg"),
    )
