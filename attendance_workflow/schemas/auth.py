# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from attendance_workflow.models.enums import Role


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers.

    ``team_id`` is the caller's team as known to the directory; managers act
    only within it.
    """

    user_id: uuid.UUID
    role: Role = Role.EMPLOYEE
    team_id: uuid.UUID | None = None
