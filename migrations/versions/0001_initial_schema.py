"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-01-01 00:00:00.000000

days        - one wake-to-sleep period with cached signal/wasted totals;
              at most one row has sleep_time NULL (uq_days_single_open)
log_entries - timestamped entries; drafts never count toward totals
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    entry_type_enum = sa.Enum(
        "wake", "sleep", "signal", "wasted", "neutral",
        name="entry_type_enum",
    )
    entry_type_enum.create(op.get_bind(), checkfirst=True)

    quality_level_enum = sa.Enum(
        "deep", "focused", "neutral", "distracted", "wasted",
        name="quality_level_enum",
    )
    quality_level_enum.create(op.get_bind(), checkfirst=True)

    entry_status_enum = sa.Enum("draft", "final", name="entry_status_enum")
    entry_status_enum.create(op.get_bind(), checkfirst=True)

    # --- days ---
    op.create_table(
        "days",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("wake_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sleep_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signal_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wasted_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("signal_total >= 0", name="ck_days_signal_total_non_negative"),
        sa.CheckConstraint("wasted_total >= 0", name="ck_days_wasted_total_non_negative"),
    )
    op.create_index("ix_days_id", "days", ["id"])
    op.create_index("ix_days_wake_time", "days", ["wake_time"])
    op.create_index("ix_days_sleep_time", "days", ["sleep_time"])
    op.create_index(
        "uq_days_single_open",
        "days",
        [sa.text("(sleep_time IS NULL)")],
        unique=True,
        postgresql_where=sa.text("sleep_time IS NULL"),
        sqlite_where=sa.text("sleep_time IS NULL"),
    )

    # --- log_entries ---
    op.create_table(
        "log_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day_id", sa.Integer(), sa.ForeignKey("days.id", ondelete="CASCADE"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("entry_type", sa.Enum(
            "wake", "sleep", "signal", "wasted", "neutral",
            name="entry_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("quality", sa.Enum(
            "deep", "focused", "neutral", "distracted", "wasted",
            name="quality_level_enum", create_type=False,
        ), nullable=True),
        sa.Column("status", sa.Enum(
            "draft", "final", name="entry_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_log_entries_id", "log_entries", ["id"])
    op.create_index("ix_log_entries_day_id", "log_entries", ["day_id"])
    op.create_index("ix_log_entries_timestamp", "log_entries", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_log_entries_timestamp", table_name="log_entries")
    op.drop_index("ix_log_entries_day_id", table_name="log_entries")
    op.drop_index("ix_log_entries_id", table_name="log_entries")
    op.drop_table("log_entries")

    op.drop_index("uq_days_single_open", table_name="days")
    op.drop_index("ix_days_sleep_time", table_name="days")
    op.drop_index("ix_days_wake_time", table_name="days")
    op.drop_index("ix_days_id", table_name="days")
    op.drop_table("days")

    sa.Enum(name="entry_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="quality_level_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="entry_type_enum").drop(op.get_bind(), checkfirst=True)
