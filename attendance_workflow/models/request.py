# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from attendance_workflow.models.base import TimestampMixin, UTCDateTime, UUIDBase
from attendance_workflow.models.enums import RequestStatus

_PENDING_ADJUST_TIME = "type = 'ADJUST_TIME' AND status = 'PENDING'"
_PENDING_OT_REQUEST = "type = 'OT_REQUEST' AND status = 'PENDING'"


class AttendanceRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's ADJUST_TIME, LEAVE or OT_REQUEST with approval state.

    ``check_in_date`` is the single business date of ADJUST_TIME (the anchor
    check-in day) and OT_REQUEST (the overtime day); LEAVE uses the
    ``leave_*`` range instead.
    """

    __tablename__ = "attendance_request"
    __table_args__ = (
        sa.Index("ix_request_user_status", "user_id", "status"),
        sa.Index("ix_request_user_type_status", "user_id", "type", "status"),
        # At most one PENDING request per (user, day) for the single-day types.
        sa.Index(
            "uq_request_pending_adjust_time",
            "user_id",
            "check_in_date",
            unique=True,
            postgresql_where=sa.text(_PENDING_ADJUST_TIME),
            sqlite_where=sa.text(_PENDING_ADJUST_TIME),
        ),
        sa.Index(
            "uq_request_pending_ot",
            "user_id",
            "check_in_date",
            unique=True,
            postgresql_where=sa.text(_PENDING_OT_REQUEST),
            sqlite_where=sa.text(_PENDING_OT_REQUEST),
        ),
        sa.CheckConstraint(
            "check_out_date IS NULL OR check_out_date >= check_in_date",
            name="ck_request_checkout_after_checkin_date",
        ),
        sa.CheckConstraint(
            "leave_end_date IS NULL OR leave_end_date >= leave_start_date",
            name="ck_request_leave_range",
        ),
    )

    user_id: uuid.UUID = Field(index=True)
    type: str = Field(max_length=20)
    status: str = Field(default=RequestStatus.PENDING, max_length=20, sa_column_kwargs={"server_default": "PENDING"})
    reason: str = Field(max_length=1000)

    # ADJUST_TIME and OT_REQUEST
    check_in_date: datetime.date | None = None
    # ADJUST_TIME
    check_out_date: datetime.date | None = None
    requested_check_in_at: datetime.datetime | None = Field(default=None, sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
    requested_check_out_at: datetime.datetime | None = Field(default=None, sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
    # LEAVE
    leave_start_date: datetime.date | None = None
    leave_end_date: datetime.date | None = None
    leave_type: str | None = Field(default=None, max_length=20)
    leave_days_count: int | None = None
    # OT_REQUEST
    estimated_end_time: datetime.datetime | None = Field(default=None, sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
    actual_ot_minutes: int | None = None

    approved_by: uuid.UUID | None = None
    approved_at: datetime.datetime | None = Field(default=None, sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
