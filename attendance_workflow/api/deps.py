# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from attendance_workflow.exceptions import ForbiddenError
from attendance_workflow.models.enums import Role
from attendance_workflow.schemas.auth import AuthContext
from attendance_workflow.services.approval import require_approver
from attendance_workflow.services.directory import DirectoryService, get_directory_service


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: Role = Header(default=Role.EMPLOYEE),
    x_team_id: uuid.UUID | None = Header(default=None),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role, team_id=x_team_id)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def get_approver(auth: AuthDep) -> AuthContext:
    """Require a MANAGER (with a team) or an ADMIN."""
    require_approver(auth)
    return auth


ApproverDep = Annotated[AuthContext, Depends(get_approver)]


async def require_admin(auth: AuthDep) -> AuthContext:
    """Require admin role for the request."""
    if auth.role != Role.ADMIN:
        raise ForbiddenError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]

DirectoryDep = Annotated[DirectoryService, Depends(get_directory_service)]
