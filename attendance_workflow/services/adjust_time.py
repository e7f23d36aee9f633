# ruff: noqa: TC001, TC003
"""ADJUST_TIME creation and approval-time re-validation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from attendance_workflow.config import GraceSettings, get_grace_settings
from attendance_workflow.exceptions import BadInputError, ConflictError
from attendance_workflow.models.enums import AuditAction, RequestStatus, RequestType
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.services.attendance import get_attendance
from attendance_workflow.services.audit import audit_request
from attendance_workflow.services.dates import CLOCK_SKEW, local_date, utc_now
from attendance_workflow.services.holiday import is_non_working_day

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.schemas.request import AdjustTimePayload

logger = logging.getLogger(__name__)

DUPLICATE_PENDING_MESSAGE = (
    "You already have a pending request for this date. Please wait for approval or cancel the existing request."
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_session_length(anchor: datetime, check_out: datetime, grace: GraceSettings, *, prefix: str = "") -> None:
    """Checkout must follow the anchor by more than zero and at most the session max."""
    if check_out - anchor > grace.session_max:
        raise BadInputError(f"{prefix}Session length exceeds {grace.checkout_grace_hours}h limit")
    if check_out <= anchor:
        raise BadInputError(f"{prefix}requested_check_out_at must be after check-in")


async def _has_pending_duplicate(session: AsyncSession, user_id: uuid.UUID, request: AttendanceRequest) -> bool:
    result = await session.execute(
        select(col(AttendanceRequest.id)).where(
            col(AttendanceRequest.user_id) == user_id,
            col(AttendanceRequest.type) == RequestType.ADJUST_TIME.value,
            col(AttendanceRequest.status) == RequestStatus.PENDING.value,
            col(AttendanceRequest.check_in_date) == request.check_in_date,
        )
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_adjust_time_request(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: AdjustTimePayload,
    *,
    grace: GraceSettings | None = None,
    now: datetime | None = None,
) -> AttendanceRequest:
    """Validate and persist a PENDING ADJUST_TIME request.

    Field presence, reason, offset-qualified instants and in/out ordering are
    enforced by ``AdjustTimePayload``. The rules below need the clock, the
    holiday calendar or the existing attendance row:

    1. Check-in is not in the future and falls on the anchor day.
    2. The anchor day is not a weekend or holiday.
    3. The anchor (explicit check-in, else the recorded one) is within the
       submission window.
    4. A checkout stays within the session max of the anchor; a same-day
       checkout may not be in the future.
    5. Partial edits stay chronological against the recorded row.
    6. At most one PENDING ADJUST_TIME per user and day.
    """
    grace = grace or get_grace_settings()
    now = now or utc_now()
    day = payload.date
    check_in = payload.requested_check_in_at
    check_out = payload.requested_check_out_at

    if check_in is not None:
        if check_in > now + CLOCK_SKEW:
            raise BadInputError("requested_check_in_at cannot be in the future")
        if local_date(check_in) != day:
            raise BadInputError("requested_check_in_at must be on the same date as request date (UTC+07:00)")

    existing = await get_attendance(session, user_id, day)

    if await is_non_working_day(session, day):
        raise BadInputError("Cannot create time adjustment request for weekend or holiday")

    anchor = check_in if check_in is not None else (existing.check_in_at if existing is not None else None)

    if anchor is not None and now - anchor > grace.submission_max:
        raise BadInputError(f"Cannot submit request more than {grace.adjust_request_max_days} days after check-in")

    if check_out is not None:
        cross_midnight = anchor is not None and local_date(check_out) > local_date(anchor)
        if not cross_midnight and check_out > now + CLOCK_SKEW:
            raise BadInputError("requested_check_out_at cannot be in the future")
        if anchor is None:
            raise BadInputError("Cannot validate checkout without check-in reference")
        _check_session_length(anchor, check_out, grace)

    if check_in is None and existing is None:
        raise BadInputError(
            "Cannot create new attendance without check-in time. Please include requested_check_in_at"
        )

    if existing is not None:
        if check_out is not None and check_in is None and check_out <= existing.check_in_at:
            raise BadInputError("requested_check_out_at must be after existing check-in time")
        if (
            check_in is not None
            and check_out is None
            and existing.check_out_at is not None
            and check_in >= existing.check_out_at
        ):
            raise BadInputError("requested_check_in_at must be before existing check-out time")

    check_out_date = local_date(check_out) if check_out is not None else None
    if check_out_date is not None and check_out_date < day:
        raise BadInputError("requested_check_out_at must be on or after check-in date (UTC+07:00)")

    request = AttendanceRequest(
        user_id=user_id,
        type=RequestType.ADJUST_TIME.value,
        reason=payload.reason,
        check_in_date=day,
        check_out_date=check_out_date,
        requested_check_in_at=check_in,
        requested_check_out_at=check_out,
        created_at=now,
        updated_at=now,
    )

    if await _has_pending_duplicate(session, user_id, request):
        raise ConflictError(DUPLICATE_PENDING_MESSAGE)

    session.add(request)
    try:
        await session.flush()
    except IntegrityError:
        # A concurrent submission won the partial unique index.
        await session.rollback()
        logger.warning("Duplicate pending ADJUST_TIME for user %s on %s", user_id, day)
        raise ConflictError(DUPLICATE_PENDING_MESSAGE) from None

    await audit_request(session, user_id, request, AuditAction.CREATE)
    await session.commit()
    await session.refresh(request)
    logger.info("ADJUST_TIME request %s created for user %s on %s", request.id, user_id, day)
    return request


async def revalidate_for_approval(
    session: AsyncSession,
    request: AttendanceRequest,
    grace: GraceSettings,
) -> None:
    """Re-run the time rules of an ADJUST_TIME request against current data.

    The recorded attendance may have changed since submission, so the anchor
    is derived again. The submission window is measured from the anchor to
    the moment the request was created. A holiday declared after submission
    blocks the approval here, before the status changes.
    """
    day = request.check_in_date
    if day is None:
        raise BadInputError("Cannot approve: request has no check-in date")

    if await is_non_working_day(session, day):
        raise BadInputError("Cannot approve time adjustment request for weekend/holiday")

    check_in = request.requested_check_in_at
    if check_in is not None and local_date(check_in) != day:
        raise BadInputError("requested_check_in_at must be on the same date as request date (UTC+07:00)")

    if check_in is not None:
        anchor = check_in
    else:
        existing = await get_attendance(session, request.user_id, day)
        anchor = existing.check_in_at if existing is not None else None

    if anchor is None:
        raise BadInputError("Cannot approve: missing check-in reference")

    if request.created_at - anchor > grace.submission_max:
        raise BadInputError(f"Request invalid: submitted more than {grace.adjust_request_max_days}d after check-in")

    if request.requested_check_out_at is not None:
        _check_session_length(anchor, request.requested_check_out_at, grace, prefix="Request invalid: ")
