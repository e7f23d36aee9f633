# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from fastapi import APIRouter, Query

from attendance_workflow.api.deps import AuthDep
from attendance_workflow.db import SessionDep
from attendance_workflow.schemas.attendance import MonthStatusResponse
from attendance_workflow.services import attendance as attendance_service

attendance_router = APIRouter(prefix="/attendance", tags=["attendance"])


@attendance_router.get("/me/statuses", response_model=MonthStatusResponse)
async def get_my_month_statuses(
    session: SessionDep,
    auth: AuthDep,
    month: str = Query(pattern=r"^\d{4}-\d{2}$"),
) -> MonthStatusResponse:
    """Per-day attendance status of the caller for a ``YYYY-MM`` month."""
    days = await attendance_service.get_month_statuses(session, auth.user_id, month)
    return MonthStatusResponse(user_id=auth.user_id, month=month, days=days)
