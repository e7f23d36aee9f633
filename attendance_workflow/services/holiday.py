from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from attendance_workflow.models.holiday import Holiday
from attendance_workflow.services.dates import is_weekend, month_bounds

if TYPE_CHECKING:
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession


async def holidays_between(session: AsyncSession, start: date, end: date) -> set[date]:
    """Holiday dates within the inclusive range ``[start, end]``."""
    result = await session.execute(
        select(col(Holiday.date)).where(
            col(Holiday.date) >= start,
            col(Holiday.date) <= end,
        )
    )
    return set(result.scalars().all())


async def holidays_for_month(session: AsyncSession, month: str) -> set[date]:
    """Holiday dates of a ``YYYY-MM`` month."""
    first, following = month_bounds(month)
    result = await session.execute(
        select(col(Holiday.date)).where(
            col(Holiday.date) >= first,
            col(Holiday.date) < following,
        )
    )
    return set(result.scalars().all())


async def is_non_working_day(session: AsyncSession, day: date) -> bool:
    """True for Saturdays, Sundays and holidays."""
    if is_weekend(day):
        return True
    return day in await holidays_between(session, day, day)
