# ruff: noqa: TC001, TC003
"""Approve/reject orchestration.

This module owns every PENDING -> APPROVED/REJECTED transition. Each
decision runs inside the injected unit of work:

1. Load the request and its owner; the owner must still be active.
2. RBAC: a MANAGER decides only for members of their own team.
3. ADJUST_TIME approvals re-check their date and time rules, holidays
   included, so a refusal never leaves a committed decision behind.
4. Flip the status with a compare-and-set on ``status = 'PENDING'``.
5. Approvals project the request onto attendance.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from sqlalchemy import select, update
from sqlmodel import col

from attendance_workflow.config import GraceSettings, get_grace_settings
from attendance_workflow.exceptions import ConflictError, ForbiddenError, NotFoundError
from attendance_workflow.models.enums import AuditAction, RequestStatus, RequestType, Role
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.services.adjust_time import revalidate_for_approval
from attendance_workflow.services.audit import audit_request, model_to_audit_dict
from attendance_workflow.services.dates import utc_now
from attendance_workflow.services.directory import DirectoryService, UserInfo, get_directory_service
from attendance_workflow.services.reconcile import reconcile_attendance

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.schemas.auth import AuthContext
    from attendance_workflow.uow import UnitOfWork

logger = logging.getLogger(__name__)

_Verb = Literal["approve", "reject"]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def require_approver(approver: AuthContext) -> None:
    """Only managers and admins may decide requests."""
    if approver.role not in (Role.MANAGER, Role.ADMIN):
        raise ForbiddenError("Only managers and admins can decide requests")
    if approver.role == Role.MANAGER and approver.team_id is None:
        raise ForbiddenError("Manager must be assigned to a team")


def check_team_scope(approver: AuthContext, owner: UserInfo, verb: _Verb) -> None:
    """A MANAGER may only act on requests from their own team. ADMIN bypasses."""
    if approver.role == Role.ADMIN:
        return
    if approver.team_id is None:
        raise ForbiddenError("Manager must be assigned to a team")
    if owner.team_id is None:
        raise ForbiddenError("Request user is not assigned to any team")
    if owner.team_id != approver.team_id:
        raise ForbiddenError(f"You can only {verb} requests from your team")


async def _get_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> AttendanceRequest:
    result = await session.execute(select(AttendanceRequest).where(col(AttendanceRequest.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Request not found")
    return request


async def _load_for_decision(
    session: AsyncSession,
    request_id: uuid.UUID,
    approver: AuthContext,
    directory: DirectoryService,
    verb: _Verb,
) -> AttendanceRequest:
    require_approver(approver)
    request = await _get_request_or_404(session, request_id)

    owner = await directory.get_user(request.user_id)
    if owner is None:
        raise ForbiddenError("Request owner not found")
    if not owner.is_eligible:
        raise ForbiddenError("Request owner is inactive or deleted")

    check_team_scope(approver, owner, verb)
    return request


async def _compare_and_set_status(
    session: AsyncSession,
    request_id: uuid.UUID,
    new_status: RequestStatus,
    approver: AuthContext,
    now: datetime,
) -> AttendanceRequest:
    """Move a PENDING request to ``new_status``; ConflictError if it was already decided."""
    result = await session.execute(
        update(AttendanceRequest)
        .where(
            col(AttendanceRequest.id) == request_id,
            col(AttendanceRequest.status) == RequestStatus.PENDING.value,
        )
        .values(status=new_status.value, approved_by=approver.user_id, approved_at=now, updated_at=now)
        .returning(AttendanceRequest),
        execution_options={"populate_existing": True},
    )
    updated = result.scalar_one_or_none()
    if updated is not None:
        return updated

    current = await session.execute(
        select(col(AttendanceRequest.status)).where(col(AttendanceRequest.id) == request_id)
    )
    current_status = current.scalar_one_or_none()
    status_text = current_status.lower() if current_status is not None else "unknown"
    logger.warning("Request %s lost a %s race, already %s", request_id, new_status.value, status_text)
    raise ConflictError(f"Request already {status_text}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def approve_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    approver: AuthContext,
    uow: UnitOfWork,
    *,
    directory: DirectoryService | None = None,
    grace: GraceSettings | None = None,
    now: datetime | None = None,
) -> AttendanceRequest:
    """Approve a PENDING request and reconcile attendance."""
    directory = directory or get_directory_service()

    async def work(session: AsyncSession) -> AttendanceRequest:
        request = await _load_for_decision(session, request_id, approver, directory, "approve")

        if request.type == RequestType.ADJUST_TIME.value:
            await revalidate_for_approval(session, request, grace or get_grace_settings())

        before = model_to_audit_dict(request)
        approved = await _compare_and_set_status(
            session, request_id, RequestStatus.APPROVED, approver, now or utc_now()
        )
        await audit_request(session, approver.user_id, approved, AuditAction.APPROVE, before)
        await uow.checkpoint(session)

        await reconcile_attendance(session, approved, approver.user_id)
        return approved

    approved = await uow.run(session, work)
    logger.info("Request %s (%s) approved by %s via %s", approved.id, approved.type, approver.user_id, uow.name)
    return approved


async def reject_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    approver: AuthContext,
    uow: UnitOfWork,
    *,
    directory: DirectoryService | None = None,
    now: datetime | None = None,
) -> AttendanceRequest:
    """Reject a PENDING request. Attendance is never touched."""
    directory = directory or get_directory_service()

    async def work(session: AsyncSession) -> AttendanceRequest:
        request = await _load_for_decision(session, request_id, approver, directory, "reject")
        before = model_to_audit_dict(request)
        rejected = await _compare_and_set_status(
            session, request_id, RequestStatus.REJECTED, approver, now or utc_now()
        )
        await audit_request(session, approver.user_id, rejected, AuditAction.REJECT, before)
        return rejected

    rejected = await uow.run(session, work)
    logger.info("Request %s (%s) rejected by %s", rejected.id, rejected.type, approver.user_id)
    return rejected
