from __future__ import annotations

"""
🎬 StreamGate — Content (catalog read model)

Minimal projection of the catalog that playback needs. Catalog CRUD lives in
another service; this table is populated by it and only read here.

Media keys
----------
• `video_path`      — single stored object key (takes precedence)
• `video_qualities` — legacy {quality → key} map
• neither           — keys are derived from ids and quality
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Index, JSON, String, text

from app.db.base_class import Base, StringPKMixin, TimestampMixin


class Content(StringPKMixin, TimestampMixin, Base):
    __tablename__ = "content"

    content_type = Column(String(16), nullable=False)
    title = Column(String(255), nullable=False, default="", server_default=text("''"))
    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))

    video_path = Column(String(1024), nullable=True)
    video_qualities = Column(JSON, nullable=True)

    # Episodes only
    series_id = Column(String(64), nullable=True)
    season_id = Column(String(64), nullable=True)

    subtitles = Column(JSON, nullable=True, doc="[{language, label?, url}]")

    __table_args__ = (
        CheckConstraint("content_type IN ('movie','episode')", name="content_type_known"),
        Index("ix_content_series_season", "series_id", "season_id"),
    )
