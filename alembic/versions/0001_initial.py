"""Initial off day tracker schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "personnel",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )
    op.create_table(
        "record_sequence",
        sa.Column("name", sa.String(length=20), nullable=False),
        sa.Column("last_value", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )
    op.create_table(
        "off_granted",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("personnel", sa.String(length=255), nullable=False),
        sa.Column("granted_date", sa.Date(), nullable=False),
        sa.Column("duration_type", sa.String(length=20), nullable=False),
        sa.Column("duration_tenths", sa.Integer(), nullable=False),
        sa.Column("reason_type", sa.String(length=20), nullable=False),
        sa.Column("weekend_ops_duty_date", sa.Date(), nullable=True),
        sa.Column("reason_details", sa.Text(), nullable=False),
        sa.Column("provided_by", sa.String(length=255), nullable=False),
        sa.Column("used_tenths", sa.Integer(), server_default="0", nullable=False),
        sa.Column("remaining_tenths", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="Unused", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("used_tenths >= 0", name="ck_granted_used_non_negative"),
        sa.CheckConstraint("used_tenths <= duration_tenths", name="ck_granted_used_within_duration"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_off_granted_personnel", "off_granted", ["personnel"])
    op.create_table(
        "off_used",
        sa.Column("use_id", sa.String(length=32), nullable=False),
        sa.Column("personnel", sa.String(length=255), nullable=False),
        sa.Column("intended_date", sa.Date(), nullable=False),
        sa.Column("session", sa.String(length=20), nullable=False),
        sa.Column("duration_tenths", sa.Integer(), nullable=False),
        sa.Column("allocations_json", sa.JSON(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("use_id"),
    )
    op.create_index("ix_off_used_personnel", "off_used", ["personnel"])
    op.create_index("ix_off_used_intended_date", "off_used", ["intended_date"])
    op.create_table(
        "edit_log",
        sa.Column("log_id", sa.String(length=32), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("personnel", sa.String(length=255), nullable=False),
        sa.Column("record_type", sa.String(length=50), nullable=False),
        sa.Column("record_id", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("edited_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("log_id"),
    )
    op.create_index("ix_edit_log_action", "edit_log", ["action"])
    op.create_index("ix_edit_log_personnel", "edit_log", ["personnel"])
    op.create_index("ix_edit_log_created_at", "edit_log", ["created_at"])
    op.create_index("ix_edit_log_record", "edit_log", ["record_type", "record_id"])


def downgrade() -> None:
    op.drop_index("ix_edit_log_record", table_name="edit_log")
    op.drop_index("ix_edit_log_created_at", table_name="edit_log")
    op.drop_index("ix_edit_log_personnel", table_name="edit_log")
    op.drop_index("ix_edit_log_action", table_name="edit_log")
    op.drop_table("edit_log")
    op.drop_index("ix_off_used_intended_date", table_name="off_used")
    op.drop_index("ix_off_used_personnel", table_name="off_used")
    op.drop_table("off_used")
    op.drop_index("ix_off_granted_personnel", table_name="off_granted")
    op.drop_table("off_granted")
    op.drop_table("record_sequence")
    op.drop_table("personnel")
