# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, assert_never

from sqlalchemy import func, select
from sqlmodel import col

from attendance_workflow.config import GraceSettings
from attendance_workflow.exceptions import ForbiddenError, NotFoundError
from attendance_workflow.models.enums import LeaveType, RequestStatus, RequestType, Role
from attendance_workflow.models.request import AttendanceRequest
from attendance_workflow.schemas.request import (
    AdjustTimePayload,
    LeavePayload,
    OtRequestPayload,
    OwnerProfile,
    RequestListResponse,
    RequestResponse,
)
from attendance_workflow.services.adjust_time import create_adjust_time_request
from attendance_workflow.services.directory import DirectoryService, UserInfo, get_directory_service
from attendance_workflow.services.leave import create_leave_request
from attendance_workflow.services.overtime import create_ot_request

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from attendance_workflow.schemas.auth import AuthContext


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def build_request_response(request: AttendanceRequest, owner: UserInfo | None = None) -> RequestResponse:
    """Map a request model to its response schema."""
    return RequestResponse(
        id=request.id,
        user_id=request.user_id,
        type=RequestType(request.type),
        status=RequestStatus(request.status),
        reason=request.reason,
        check_in_date=request.check_in_date,
        check_out_date=request.check_out_date,
        requested_check_in_at=request.requested_check_in_at,
        requested_check_out_at=request.requested_check_out_at,
        leave_start_date=request.leave_start_date,
        leave_end_date=request.leave_end_date,
        leave_type=LeaveType(request.leave_type) if request.leave_type else None,
        leave_days_count=request.leave_days_count,
        estimated_end_time=request.estimated_end_time,
        actual_ot_minutes=request.actual_ot_minutes,
        approved_by=request.approved_by,
        approved_at=request.approved_at,
        created_at=request.created_at,
        updated_at=request.updated_at,
        owner=(
            OwnerProfile(id=owner.id, name=owner.name, employee_code=owner.employee_code, team_id=owner.team_id)
            if owner is not None
            else None
        ),
    )


async def _list(
    session: AsyncSession,
    filters: list[ColumnElement[bool]],
    offset: int,
    limit: int,
    directory: DirectoryService,
) -> RequestListResponse:
    count_result = await session.execute(select(func.count()).select_from(AttendanceRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AttendanceRequest)
        .where(*filters)
        .order_by(col(AttendanceRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    requests = list(result.scalars().all())

    owners: dict[uuid.UUID, UserInfo | None] = {}
    for user_id in {r.user_id for r in requests}:
        owners[user_id] = await directory.get_user(user_id)
    return RequestListResponse(
        items=[build_request_response(r, owners.get(r.user_id)) for r in requests],
        total=total,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_request(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: AdjustTimePayload | LeavePayload | OtRequestPayload,
    *,
    directory: DirectoryService | None = None,
    grace: GraceSettings | None = None,
    now: datetime | None = None,
) -> RequestResponse:
    """Create a request of whichever type the payload describes."""
    directory = directory or get_directory_service()
    match payload:
        case AdjustTimePayload():
            request = await create_adjust_time_request(session, user_id, payload, grace=grace, now=now)
        case LeavePayload():
            request = await create_leave_request(session, user_id, payload)
        case OtRequestPayload():
            request = await create_ot_request(session, user_id, payload, grace=grace, now=now)
        case _:
            assert_never(payload)
    return build_request_response(request, await directory.get_user(user_id))


async def list_my_requests(
    session: AsyncSession,
    user_id: uuid.UUID,
    status_filter: RequestStatus | None = None,
    offset: int = 0,
    limit: int = 20,
    *,
    directory: DirectoryService | None = None,
) -> RequestListResponse:
    """The caller's own requests, newest first."""
    filters = [col(AttendanceRequest.user_id) == user_id]
    if status_filter is not None:
        filters.append(col(AttendanceRequest.status) == status_filter.value)
    return await _list(session, filters, offset, limit, directory or get_directory_service())


async def list_pending_requests(
    session: AsyncSession,
    approver: AuthContext,
    offset: int = 0,
    limit: int = 20,
    *,
    directory: DirectoryService | None = None,
) -> RequestListResponse:
    """PENDING requests the approver may decide, newest first.

    A MANAGER sees the non-deleted members of their team; an ADMIN sees all.
    """
    directory = directory or get_directory_service()
    filters = [col(AttendanceRequest.status) == RequestStatus.PENDING.value]

    if approver.role == Role.MANAGER:
        if approver.team_id is None:
            raise ForbiddenError("Manager must be assigned to a team")
        members = await directory.list_team_members(approver.team_id)
        filters.append(col(AttendanceRequest.user_id).in_([m.id for m in members]))
    elif approver.role != Role.ADMIN:
        raise ForbiddenError("Only managers and admins can list pending requests")

    return await _list(session, filters, offset, limit, directory)


async def get_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    viewer: AuthContext,
    *,
    directory: DirectoryService | None = None,
) -> RequestResponse:
    """A single request, visible to its owner, an ADMIN or the owner's team MANAGER.

    Anyone else gets the same NotFoundError as for a missing id.
    """
    directory = directory or get_directory_service()
    result = await session.execute(select(AttendanceRequest).where(col(AttendanceRequest.id) == request_id))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Request not found")

    owner = await directory.get_user(request.user_id)
    visible = (
        viewer.user_id == request.user_id
        or viewer.role == Role.ADMIN
        or (
            viewer.role == Role.MANAGER
            and viewer.team_id is not None
            and owner is not None
            and owner.team_id == viewer.team_id
        )
    )
    if not visible:
        raise NotFoundError("Request not found")
    return build_request_response(request, owner)
