# ruff: noqa: TC001, TC003
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from attendance_workflow.config import GraceSettings, get_grace_settings
from attendance_workflow.exceptions import BadInputError, ConflictError, NotFoundError
from attendance_workflow.models.enums import AuditAction, AuditEntityType, RequestStatus, RequestType
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.services.attendance import get_attendance
from attendance_workflow.services.audit import audit_request, write_audit_log
from attendance_workflow.services.dates import at_local_time, local_date, month_bounds, month_key, utc_now

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.schemas.request import OtRequestPayload

logger = logging.getLogger(__name__)

CANCEL_NOT_FOUND_MESSAGE = "OT request not found or already processed"
DUPLICATE_OT_MESSAGE = "Duplicate OT request detected. Please try again."


def _pending_ot_filter(user_id: uuid.UUID) -> list[ColumnElement[bool]]:
    return [
        col(AttendanceRequest.user_id) == user_id,
        col(AttendanceRequest.type) == RequestType.OT_REQUEST.value,
        col(AttendanceRequest.status) == RequestStatus.PENDING.value,
    ]


async def create_ot_request(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: OtRequestPayload,
    *,
    grace: GraceSettings | None = None,
    now: datetime | None = None,
) -> AttendanceRequest:
    """Create a PENDING OT_REQUEST, or extend the user's pending one for the same day.

    A second submission for a day that already has a PENDING request updates
    its estimated end and reason in one conditional UPDATE instead of adding
    a row.
    """
    grace = grace or get_grace_settings()
    now = now or utc_now()
    day = payload.date
    end = payload.estimated_end_time
    today = local_date(now)

    if day < today:
        raise BadInputError("Cannot create OT request for past dates")
    if day == today and end <= now:
        raise BadInputError(
            "Cannot create OT request for past time. OT must be requested before the estimated end time."
        )
    if local_date(end) != day:
        raise BadInputError(
            "Cross-midnight OT requires separate requests for each date. Please create a request for each day."
        )

    boundary = at_local_time(day, grace.ot_start_time)
    if end <= boundary:
        raise BadInputError(
            f"OT must start after {grace.ot_start_time:%H:%M}. Please adjust your estimated end time."
        )
    if end - boundary < grace.ot_min_duration:
        raise BadInputError(f"Minimum OT duration is {grace.ot_min_duration_minutes} minutes")

    attendance = await get_attendance(session, user_id, day)
    if attendance is not None and attendance.check_out_at is not None:
        raise BadInputError("Cannot request OT after checkout. OT must be requested before checking out.")

    first, following = month_bounds(month_key(day))
    count_result = await session.execute(
        select(func.count())
        .select_from(AttendanceRequest)
        .where(
            *_pending_ot_filter(user_id),
            col(AttendanceRequest.check_in_date) >= first,
            col(AttendanceRequest.check_in_date) < following,
        )
    )
    if count_result.scalar_one() >= grace.ot_max_pending_per_month:
        raise BadInputError(f"Maximum {grace.ot_max_pending_per_month} pending OT requests per month reached")

    extend_result = await session.execute(
        update(AttendanceRequest)
        .where(*_pending_ot_filter(user_id), col(AttendanceRequest.check_in_date) == day)
        .values(estimated_end_time=end, reason=payload.reason, updated_at=now)
        .returning(AttendanceRequest),
        execution_options={"populate_existing": True},
    )
    extended = extend_result.scalar_one_or_none()
    if extended is not None:
        await audit_request(session, user_id, extended, AuditAction.EXTEND)
        await session.commit()
        logger.info("OT request %s extended for user %s on %s", extended.id, user_id, day)
        return extended

    request = AttendanceRequest(
        user_id=user_id,
        type=RequestType.OT_REQUEST.value,
        reason=payload.reason,
        check_in_date=day,
        estimated_end_time=end,
        created_at=now,
        updated_at=now,
    )
    session.add(request)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.warning("Concurrent OT request creation for user %s on %s", user_id, day)
        raise ConflictError(DUPLICATE_OT_MESSAGE) from None

    await audit_request(session, user_id, request, AuditAction.CREATE)
    await session.commit()
    await session.refresh(request)
    logger.info("OT request %s created for user %s on %s", request.id, user_id, day)
    return request


async def cancel_ot_request(session: AsyncSession, user_id: uuid.UUID, request_id: uuid.UUID) -> None:
    """Delete the caller's own PENDING OT request.

    Missing ids, other users' requests, other types and decided requests all
    produce the same NotFoundError.
    """
    result = await session.execute(
        delete(AttendanceRequest)
        .where(col(AttendanceRequest.id) == request_id, *_pending_ot_filter(user_id))
        .returning(col(AttendanceRequest.id), col(AttendanceRequest.check_in_date))
    )
    deleted = result.first()
    if deleted is None:
        await session.rollback()
        raise NotFoundError(CANCEL_NOT_FOUND_MESSAGE)

    await write_audit_log(
        session,
        actor_id=user_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=request_id,
        action=AuditAction.CANCEL,
        before_json={
            "type": RequestType.OT_REQUEST.value,
            "status": RequestStatus.PENDING.value,
            "check_in_date": deleted.check_in_date.isoformat() if deleted.check_in_date else None,
        },
    )
    await session.commit()
    logger.info("OT request %s cancelled by user %s", request_id, user_id)
