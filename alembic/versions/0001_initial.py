"""Initial schema: requests, attendance, holidays and audit log.

Revision ID: 0001
Revises:
Create Date: 2026-01-05 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_PENDING_ADJUST_TIME = "type = 'ADJUST_TIME' AND status = 'PENDING'"
_PENDING_OT_REQUEST = "type = 'OT_REQUEST' AND status = 'PENDING'"


def upgrade() -> None:
    op.create_table(
        "attendance_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="PENDING", nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=True),
        sa.Column("check_out_date", sa.Date(), nullable=True),
        sa.Column("requested_check_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_check_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("leave_start_date", sa.Date(), nullable=True),
        sa.Column("leave_end_date", sa.Date(), nullable=True),
        sa.Column("leave_type", sa.String(length=20), nullable=True),
        sa.Column("leave_days_count", sa.Integer(), nullable=True),
        sa.Column("estimated_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_ot_minutes", sa.Integer(), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "check_out_date IS NULL OR check_out_date >= check_in_date",
            name="ck_request_checkout_after_checkin_date",
        ),
        sa.CheckConstraint(
            "leave_end_date IS NULL OR leave_end_date >= leave_start_date",
            name="ck_request_leave_range",
        ),
    )
    op.create_index("ix_attendance_request_user_id", "attendance_request", ["user_id"])
    op.create_index("ix_request_user_status", "attendance_request", ["user_id", "status"])
    op.create_index("ix_request_user_type_status", "attendance_request", ["user_id", "type", "status"])
    op.create_index(
        "uq_request_pending_adjust_time",
        "attendance_request",
        ["user_id", "check_in_date"],
        unique=True,
        postgresql_where=sa.text(_PENDING_ADJUST_TIME),
        sqlite_where=sa.text(_PENDING_ADJUST_TIME),
    )
    op.create_index(
        "uq_request_pending_ot",
        "attendance_request",
        ["user_id", "check_in_date"],
        unique=True,
        postgresql_where=sa.text(_PENDING_OT_REQUEST),
        sqlite_where=sa.text(_PENDING_OT_REQUEST),
    )

    op.create_table(
        "attendance",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("check_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ot_approved", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )
    op.create_index("ix_attendance_user_id", "attendance", ["user_id"])

    op.create_table(
        "holiday",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_holiday_date", "holiday", ["date"], unique=True)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entity_history", "audit_log", ["entity_id", "created_at"])
    op.create_index("ix_audit_actor_history", "audit_log", ["actor_id", "created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("holiday")
    op.drop_table("attendance")
    op.drop_table("attendance_request")
