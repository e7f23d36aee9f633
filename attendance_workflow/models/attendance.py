# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field

from attendance_workflow.models.base import TimestampMixin, UTCDateTime, UUIDBase


class Attendance(UUIDBase, TimestampMixin, table=True):
    """One user's check-in/check-out session for a business day.

    A row only exists once a check-in is known.
    """

    __tablename__ = "attendance"
    __table_args__ = (sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),)

    user_id: uuid.UUID = Field(index=True)
    date: datetime.date
    check_in_at: datetime.datetime = Field(sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
    check_out_at: datetime.datetime | None = Field(default=None, sa_type=UTCDateTime)  # ty: ignore[invalid-argument-type]
    ot_approved: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
