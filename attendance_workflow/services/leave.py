# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from attendance_workflow.exceptions import BadInputError, ConflictError
from attendance_workflow.models.attendance import Attendance
from attendance_workflow.models.enums import AuditAction, RequestStatus, RequestType
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.services.audit import audit_request
from attendance_workflow.services.dates import DateRange, count_workdays, month_bounds
from attendance_workflow.services.holiday import holidays_between

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.schemas.request import LeavePayload

logger = logging.getLogger(__name__)

MAX_LEAVE_DAYS = 30


async def create_leave_request(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: LeavePayload,
) -> AttendanceRequest:
    """Validate and persist a PENDING LEAVE request.

    Rejects ranges that are reversed or longer than 30 days, that touch a day
    the user already has attendance for, or that overlap another PENDING or
    APPROVED leave of the same user.

    Two overlapping submissions racing each other can both pass the overlap
    check; a date range has no equality key a unique index could enforce.
    """
    start, end = payload.leave_start_date, payload.leave_end_date
    if start > end:
        raise BadInputError("leave_start_date must be before or equal to leave_end_date")

    days = DateRange(start, end)
    if len(days) > MAX_LEAVE_DAYS:
        raise BadInputError(f"Leave range cannot exceed {MAX_LEAVE_DAYS} days")

    attendance_result = await session.execute(
        select(col(Attendance.date))
        .where(
            col(Attendance.user_id) == user_id,
            col(Attendance.date) >= start,
            col(Attendance.date) <= end,
        )
        .order_by(col(Attendance.date))
        .limit(1)
    )
    checked_in = attendance_result.scalar_one_or_none()
    if checked_in is not None:
        raise BadInputError(
            f"Already checked in for {checked_in.isoformat()}. "
            "Cannot request leave for dates with attendance. Use ADJUST_TIME instead."
        )

    # existing.start <= new.end AND existing.end >= new.start, which also
    # covers containment in either direction.
    overlap_result = await session.execute(
        select(AttendanceRequest)
        .where(
            col(AttendanceRequest.user_id) == user_id,
            col(AttendanceRequest.type) == RequestType.LEAVE.value,
            col(AttendanceRequest.status).in_([RequestStatus.PENDING.value, RequestStatus.APPROVED.value]),
            col(AttendanceRequest.leave_start_date) <= end,
            col(AttendanceRequest.leave_end_date) >= start,
        )
        .limit(1)
    )
    overlapping = overlap_result.scalar_one_or_none()
    if overlapping is not None:
        status_text = "approved" if overlapping.status == RequestStatus.APPROVED.value else "pending"
        raise ConflictError(
            f"Leave overlaps with existing {status_text} leave "
            f"({overlapping.leave_start_date} to {overlapping.leave_end_date})"
        )

    holidays = await holidays_between(session, start, end)

    request = AttendanceRequest(
        user_id=user_id,
        type=RequestType.LEAVE.value,
        reason=payload.reason,
        leave_start_date=start,
        leave_end_date=end,
        leave_type=payload.leave_type.value if payload.leave_type is not None else None,
        leave_days_count=count_workdays(start, end, holidays),
    )
    session.add(request)
    await session.flush()

    await audit_request(session, user_id, request, AuditAction.CREATE)
    await session.commit()
    await session.refresh(request)
    logger.info("LEAVE request %s created for user %s (%s to %s)", request.id, user_id, start, end)
    return request


async def get_approved_leave_dates(session: AsyncSession, user_id: uuid.UUID, month: str) -> set[date]:
    """Days of a ``YYYY-MM`` month covered by the user's APPROVED leave."""
    first, following = month_bounds(month)
    last = following - timedelta(days=1)
    result = await session.execute(
        select(AttendanceRequest).where(
            col(AttendanceRequest.user_id) == user_id,
            col(AttendanceRequest.type) == RequestType.LEAVE.value,
            col(AttendanceRequest.status) == RequestStatus.APPROVED.value,
            col(AttendanceRequest.leave_start_date) <= last,
            col(AttendanceRequest.leave_end_date) >= first,
        )
    )

    dates: set[date] = set()
    for leave in result.scalars().all():
        if leave.leave_start_date is None or leave.leave_end_date is None:
            continue
        clipped = DateRange(max(leave.leave_start_date, first), min(leave.leave_end_date, last))
        dates.update(clipped)
    return dates
