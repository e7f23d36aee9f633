# ruff: noqa: TC003
"""Projection of approved requests onto attendance rows.

Every handler only writes the fields the request carries, so applying the
same approved request twice leaves the row exactly as the first run did.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, assert_never

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from attendance_workflow.exceptions import BadInputError, ConflictError, NotFoundError
from attendance_workflow.models.attendance import Attendance
from attendance_workflow.models.enums import AuditAction, AuditEntityType, RequestStatus, RequestType
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.services.attendance import get_attendance
from attendance_workflow.services.audit import model_to_audit_dict, write_audit_log
from attendance_workflow.services.holiday import is_non_working_day

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.uow import UnitOfWork

logger = logging.getLogger(__name__)

# The touched row and its state before the change (None when newly created).
_Change = tuple[Attendance, dict[str, Any] | None]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _has_approved_ot(session: AsyncSession, request: AttendanceRequest) -> bool:
    result = await session.execute(
        select(col(AttendanceRequest.id)).where(
            col(AttendanceRequest.user_id) == request.user_id,
            col(AttendanceRequest.type) == RequestType.OT_REQUEST.value,
            col(AttendanceRequest.status) == RequestStatus.APPROVED.value,
            col(AttendanceRequest.check_in_date) == request.check_in_date,
        )
    )
    return result.first() is not None


async def _apply_overtime(session: AsyncSession, request: AttendanceRequest) -> _Change | None:
    """Flag the day's attendance as approved overtime; nothing to do if the row is absent."""
    if request.check_in_date is None:
        return None
    attendance = await get_attendance(session, request.user_id, request.check_in_date)
    if attendance is None:
        logger.info("No attendance yet for OT request %s; flag will be set on adjustment", request.id)
        return None
    before = model_to_audit_dict(attendance)
    attendance.ot_approved = True
    return attendance, before


async def _apply_adjust_time(session: AsyncSession, request: AttendanceRequest) -> _Change:
    """Create or update the day's attendance with the requested times."""
    day = request.check_in_date
    if day is None:
        raise BadInputError("Cannot approve: request has no check-in date")
    if await is_non_working_day(session, day):
        raise BadInputError("Cannot approve time adjustment request for weekend/holiday")

    # OT may have been approved before any attendance existed for the day.
    ot_approved = await _has_approved_ot(session, request)

    attendance = await get_attendance(session, request.user_id, day)
    before = model_to_audit_dict(attendance) if attendance is not None else None
    if attendance is None:
        if request.requested_check_in_at is None:
            raise BadInputError("Cannot create attendance without check-in time")
        attendance = Attendance(
            user_id=request.user_id,
            date=day,
            check_in_at=request.requested_check_in_at,
        )
        session.add(attendance)
    elif request.requested_check_in_at is not None:
        attendance.check_in_at = request.requested_check_in_at

    if request.requested_check_out_at is not None:
        attendance.check_out_at = request.requested_check_out_at
    if ot_approved:
        attendance.ot_approved = True
    return attendance, before


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def reconcile_attendance(
    session: AsyncSession,
    request: AttendanceRequest,
    actor_id: uuid.UUID,
) -> Attendance | None:
    """Apply an approved request's effect to attendance, within the caller's unit of work."""
    request_type = RequestType(request.type)
    match request_type:
        case RequestType.OT_REQUEST:
            change = await _apply_overtime(session, request)
        case RequestType.ADJUST_TIME:
            change = await _apply_adjust_time(session, request)
        case RequestType.LEAVE:
            # Leave days are derived from approved requests when reporting.
            change = None
        case _:
            assert_never(request_type)

    if change is None:
        return None

    attendance, before = change
    try:
        await session.flush()
    except IntegrityError:
        logger.warning("Attendance for user %s on %s was created concurrently", request.user_id, attendance.date)
        raise ConflictError("Attendance was modified concurrently, please retry") from None

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.ATTENDANCE,
        entity_id=attendance.id,
        action=AuditAction.RECONCILE,
        before_json=before,
        after_json=model_to_audit_dict(attendance),
    )
    return attendance


async def reconcile_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
    uow: UnitOfWork,
) -> Attendance | None:
    """Re-apply an APPROVED request to attendance.

    Repairs an approval whose attendance step never ran, e.g. after a crash
    between the two commits of the sequential unit of work.
    """

    async def work(session: AsyncSession) -> Attendance | None:
        result = await session.execute(select(AttendanceRequest).where(col(AttendanceRequest.id) == request_id))
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Request not found")
        if request.status != RequestStatus.APPROVED.value:
            raise BadInputError(f"Only approved requests can be reconciled (request is {request.status.lower()})")
        return await reconcile_attendance(session, request, actor_id)

    attendance = await uow.run(session, work)
    logger.info("Request %s reconciled by %s", request_id, actor_id)
    return attendance
