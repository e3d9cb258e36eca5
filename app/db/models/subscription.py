from __future__ import annotations

"""
🧾 StreamGate — Subscription

An account's purchase of a plan for a period. Rows are written by the billing
collaborator; the controller reads them. "Effectively active" is evaluated at
read time (`status == 'active' AND end_date > now`), never by a background job.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String, text
from sqlalchemy.orm import relationship

from app.db.base_class import Base, StringPKMixin, TimestampMixin


class Subscription(StringPKMixin, TimestampMixin, Base):
    __tablename__ = "subscription"

    account_id = Column(String(64), nullable=False, doc="Account id issued by the identity service.")
    plan_id = Column(String(64), ForeignKey("plan.id", ondelete="RESTRICT"), nullable=False)

    status = Column(String(16), nullable=False, default="pending", server_default=text("'pending'"))
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    auto_renew = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    plan = relationship("Plan", lazy="joined")

    __table_args__ = (
        CheckConstraint("status IN ('pending','active','cancelled','expired')", name="status_known"),
        CheckConstraint("end_date > start_date", name="period_ordered"),
        Index("ix_subscription_account_status", "account_id", "status"),
    )
