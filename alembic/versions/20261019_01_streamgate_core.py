"""
StreamGate core tables.

- account: device + active-stream registries with a revision counter.
- plan / subscription: read-only billing reference data.
- content: catalog projection used to resolve media keys.
- playback_position: per-account resume state.
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261019_01_streamgate_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- account ---
    op.create_table(
        "account",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("devices", sa.JSON(), nullable=False),
        sa.Column("active_streams", sa.JSON(), nullable=False),
        sa.Column("revision", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("revision >= 0", name="ck_account_revision_nonneg"),
        sa.PrimaryKeyConstraint("id", name="pk_account"),
        sa.UniqueConstraint("email", name="uq_account_email"),
    )

    # --- plan ---
    op.create_table(
        "plan",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default=sa.text("'INR'"), nullable=False),
        sa.Column("duration_days", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("quality", sa.String(length=8), server_default=sa.text("'1080p'"), nullable=False),
        sa.Column("max_devices", sa.Integer(), server_default=sa.text("5"), nullable=False),
        sa.Column("max_streams", sa.Integer(), server_default=sa.text("3"), nullable=False),
        sa.Column("ad_free", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("download_allowed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quality IN ('480p','720p','1080p','4K')", name="ck_plan_quality_tier"),
        sa.CheckConstraint("max_devices >= 1", name="ck_plan_max_devices_pos"),
        sa.CheckConstraint("max_streams >= 1", name="ck_plan_max_streams_pos"),
        sa.CheckConstraint("duration_days >= 1", name="ck_plan_duration_pos"),
        sa.PrimaryKeyConstraint("id", name="pk_plan"),
        sa.UniqueConstraint("name", name="uq_plan_name"),
    )

    # --- subscription ---
    op.create_table(
        "subscription",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("account_id", sa.String(length=64), nullable=False),
        sa.Column("plan_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("auto_renew", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending','active','cancelled','expired')", name="ck_subscription_status_known"),
        sa.CheckConstraint("end_date > start_date", name="ck_subscription_period_ordered"),
        sa.ForeignKeyConstraint(["plan_id"], ["plan.id"], name="fk_subscription_plan_id_plan", ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id", name="pk_subscription"),
    )
    op.create_index("ix_subscription_account_status", "subscription", ["account_id", "status"], unique=False)

    # --- content ---
    op.create_table(
        "content",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=255), server_default=sa.text("''"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("video_path", sa.String(length=1024), nullable=True),
        sa.Column("video_qualities", sa.JSON(), nullable=True),
        sa.Column("series_id", sa.String(length=64), nullable=True),
        sa.Column("season_id", sa.String(length=64), nullable=True),
        sa.Column("subtitles", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("content_type IN ('movie','episode')", name="ck_content_content_type_known"),
        sa.PrimaryKeyConstraint("id", name="pk_content"),
    )
    op.create_index("ix_content_series_season", "content", ["series_id", "season_id"], unique=False)

    # --- playback_position ---
    op.create_table(
        "playback_position",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("account_id", sa.String(length=64), nullable=False),
        sa.Column("profile_id", sa.String(length=64), nullable=True),
        sa.Column("content_id", sa.String(length=64), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("series_id", sa.String(length=64), nullable=True),
        sa.Column("season_id", sa.String(length=64), nullable=True),
        sa.Column("watched_duration", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("total_duration", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("progress", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("device_id", sa.String(length=128), nullable=True),
        sa.Column("last_watched_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("watched_duration >= 0", name="ck_playback_position_watched_nonneg"),
        sa.CheckConstraint("total_duration >= 0", name="ck_playback_position_total_nonneg"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_playback_position_progress_range"),
        sa.PrimaryKeyConstraint("id", name="pk_playback_position"),
        sa.UniqueConstraint("account_id", "content_id", "content_type", name="uq_playback_position_account_content"),
    )
    op.create_index("ix_playback_position_account_id", "playback_position", ["account_id"], unique=False)
    op.create_index(
        "ix_playback_position_account_watched", "playback_position", ["account_id", "last_watched_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_playback_position_account_watched", table_name="playback_position")
    op.drop_index("ix_playback_position_account_id", table_name="playback_position")
    op.drop_table("playback_position")

    op.drop_index("ix_content_series_season", table_name="content")
    op.drop_table("content")

    op.drop_index("ix_subscription_account_status", table_name="subscription")
    op.drop_table("subscription")

    op.drop_table("plan")
    op.drop_table("account")
