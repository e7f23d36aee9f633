# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Body, Query, status

from attendance_workflow.api.deps import AdminDep, ApproverDep, AuthDep, DirectoryDep
from attendance_workflow.db import SessionDep
from attendance_workflow.models.enums import RequestStatus
from attendance_workflow.schemas.attendance import AttendanceResponse, ReconcileResponse
from attendance_workflow.schemas.request import (
    CancelResponse,
    RequestListResponse,
    RequestResponse,
    parse_request_payload,
)
from attendance_workflow.services import approval as approval_service
from attendance_workflow.services import overtime as overtime_service
from attendance_workflow.services import reconcile as reconcile_service
from attendance_workflow.services import request as request_service
from attendance_workflow.uow import UnitOfWorkDep

requests_router = APIRouter(prefix="/requests", tags=["requests"])


@requests_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    payload: dict[str, Any] = Body(),
) -> RequestResponse:
    """Submit an ADJUST_TIME, LEAVE or OT_REQUEST (``type`` defaults to ADJUST_TIME)."""
    parsed = parse_request_payload(payload)
    return await request_service.create_request(session, auth.user_id, parsed, directory=directory)


@requests_router.get("/me", response_model=RequestListResponse)
async def list_my_requests(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> RequestListResponse:
    """List the caller's own requests."""
    return await request_service.list_my_requests(
        session, auth.user_id, status_filter, offset, limit, directory=directory
    )


@requests_router.get("/pending", response_model=RequestListResponse)
async def list_pending_requests(
    session: SessionDep,
    approver: ApproverDep,
    directory: DirectoryDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> RequestListResponse:
    """List PENDING requests the caller may decide."""
    return await request_service.list_pending_requests(session, approver, offset, limit, directory=directory)


@requests_router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
) -> RequestResponse:
    """Get a single request."""
    return await request_service.get_request(session, request_id, auth, directory=directory)


@requests_router.post("/{request_id}/approve", response_model=RequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    approver: ApproverDep,
    directory: DirectoryDep,
    uow: UnitOfWorkDep,
) -> RequestResponse:
    """Approve a PENDING request (manager of the owner's team, or admin)."""
    approved = await approval_service.approve_request(session, request_id, approver, uow, directory=directory)
    return request_service.build_request_response(approved, await directory.get_user(approved.user_id))


@requests_router.post("/{request_id}/reject", response_model=RequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    session: SessionDep,
    approver: ApproverDep,
    directory: DirectoryDep,
    uow: UnitOfWorkDep,
) -> RequestResponse:
    """Reject a PENDING request (manager of the owner's team, or admin)."""
    rejected = await approval_service.reject_request(session, request_id, approver, uow, directory=directory)
    return request_service.build_request_response(rejected, await directory.get_user(rejected.user_id))


@requests_router.delete("/{request_id}", response_model=CancelResponse)
async def cancel_ot_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> CancelResponse:
    """Cancel the caller's own PENDING OT request."""
    await overtime_service.cancel_ot_request(session, auth.user_id, request_id)
    return CancelResponse(message="OT request cancelled successfully", request_id=request_id)


@requests_router.post("/{request_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    uow: UnitOfWorkDep,
) -> ReconcileResponse:
    """Re-apply an APPROVED request to attendance (admin only)."""
    attendance = await reconcile_service.reconcile_request(session, request_id, auth.user_id, uow)
    return ReconcileResponse(
        request_id=request_id,
        attendance=AttendanceResponse.model_validate(attendance, from_attributes=True) if attendance else None,
    )
