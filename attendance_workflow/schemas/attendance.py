# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel

from attendance_workflow.models.enums import DayStatus


class AttendanceResponse(BaseModel):
    """Response schema for one attendance row."""

    id: uuid.UUID
    user_id: uuid.UUID
    date: datetime.date
    check_in_at: datetime.datetime
    check_out_at: datetime.datetime | None
    ot_approved: bool


class ReconcileResponse(BaseModel):
    """Outcome of re-applying an approved request."""

    request_id: uuid.UUID
    attendance: AttendanceResponse | None


class MonthStatusResponse(BaseModel):
    """Per-day attendance status of one user for a month."""

    user_id: uuid.UUID
    month: str
    days: dict[datetime.date, DayStatus]
