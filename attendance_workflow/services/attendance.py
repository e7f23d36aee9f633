# ruff: noqa: TC003
"""Attendance store access and the per-day status read used by reports."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from attendance_workflow.models.attendance import Attendance
from attendance_workflow.models.enums import DayStatus
from attendance_workflow.services.dates import DateRange, is_weekend, local_date, month_bounds, utc_now
from attendance_workflow.services.holiday import holidays_for_month
from attendance_workflow.services.leave import get_approved_leave_dates

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_attendance(session: AsyncSession, user_id: uuid.UUID, day: date) -> Attendance | None:
    """The attendance row of ``user_id`` for ``day``, if any."""
    result = await session.execute(
        select(Attendance).where(
            col(Attendance.user_id) == user_id,
            col(Attendance.date) == day,
        )
    )
    return result.scalar_one_or_none()


def day_status(
    day: date,
    attendance: Attendance | None,
    *,
    today: date,
    holidays: set[date],
    leave_dates: set[date],
) -> DayStatus | None:
    """Classify one day. Returns None for a future day with nothing to report."""
    if is_weekend(day) or day in holidays:
        return DayStatus.WEEKEND_OR_HOLIDAY
    if attendance is None:
        # Approved leave takes precedence over absence.
        if day in leave_dates:
            return DayStatus.LEAVE
        if day > today:
            return None
        return DayStatus.ABSENT
    if attendance.check_out_at is None:
        return DayStatus.WORKING if day == today else DayStatus.MISSING_CHECKOUT
    return DayStatus.PRESENT


async def get_month_statuses(
    session: AsyncSession,
    user_id: uuid.UUID,
    month: str,
    today: date | None = None,
) -> dict[date, DayStatus]:
    """Status of every reportable day of a ``YYYY-MM`` month for one user."""
    first, following = month_bounds(month)
    today = today or local_date(utc_now())

    result = await session.execute(
        select(Attendance).where(
            col(Attendance.user_id) == user_id,
            col(Attendance.date) >= first,
            col(Attendance.date) < following,
        )
    )
    by_date = {row.date: row for row in result.scalars().all()}
    holidays = await holidays_for_month(session, month)
    leave_dates = await get_approved_leave_dates(session, user_id, month)

    statuses: dict[date, DayStatus] = {}
    for day in DateRange(first, following - timedelta(days=1)):
        status = day_status(day, by_date.get(day), today=today, holidays=holidays, leave_dates=leave_dates)
        if status is not None:
            statuses[day] = status
    return statuses
