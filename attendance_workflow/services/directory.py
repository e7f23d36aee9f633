# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from attendance_workflow.models.enums import Role


class UserInfo(BaseModel):
    """User metadata from the User/Team directory."""

    id: uuid.UUID
    name: str
    employee_code: str | None = None
    email: str | None = None
    role: Role = Role.EMPLOYEE
    team_id: uuid.UUID | None = None
    is_active: bool = True
    deleted_at: datetime | None = None  # soft delete marker

    @property
    def is_eligible(self) -> bool:
        """Whether requests owned by this user may still be decided."""
        return self.is_active and self.deleted_at is None


@runtime_checkable
class DirectoryService(Protocol):
    """Interface for the User/Team directory."""

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user, including inactive and soft-deleted ones. Returns None if unknown."""
        ...

    async def list_team_members(self, team_id: uuid.UUID) -> list[UserInfo]:
        """List the non-deleted members of a team."""
        ...


class InMemoryDirectoryService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Seed a user for testing."""
        self._users[user.id] = user

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user, including inactive and soft-deleted ones. Returns None if unknown."""
        return self._users.get(user_id)

    async def list_team_members(self, team_id: uuid.UUID) -> list[UserInfo]:
        """List the non-deleted members of a team."""
        return [u for u in self._users.values() if u.team_id == team_id and u.deleted_at is None]


_directory_service: DirectoryService = InMemoryDirectoryService()


def get_directory_service() -> DirectoryService:
    """FastAPI dependency for the directory."""
    return _directory_service


def set_directory_service(service: DirectoryService) -> None:
    """Override the service (for testing or production wiring)."""
    global _directory_service
    _directory_service = service
