from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from attendance_workflow.config import GraceSettings, reset_grace_settings
from attendance_workflow.db import get_session
from attendance_workflow.main import app
from attendance_workflow.models import Role, SQLModel
from attendance_workflow.schemas.auth import AuthContext
from attendance_workflow.services.directory import InMemoryDirectoryService, UserInfo, set_directory_service
from attendance_workflow.uow import SequentialUnitOfWork, UnitOfWork, get_unit_of_work

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

TEAM_A = uuid.UUID("0a000000-0000-4000-8000-00000000000a")
TEAM_B = uuid.UUID("0b000000-0000-4000-8000-00000000000b")

EMPLOYEE_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
COLLEAGUE_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")
MANAGER_A_ID = uuid.UUID("00000000-0000-4000-8000-000000000003")
MANAGER_B_ID = uuid.UUID("00000000-0000-4000-8000-000000000004")
ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000005")
INACTIVE_ID = uuid.UUID("00000000-0000-4000-8000-000000000006")
NO_TEAM_ID = uuid.UUID("00000000-0000-4000-8000-000000000007")

EMPLOYEE = AuthContext(user_id=EMPLOYEE_ID, role=Role.EMPLOYEE, team_id=TEAM_A)
MANAGER_A = AuthContext(user_id=MANAGER_A_ID, role=Role.MANAGER, team_id=TEAM_A)
MANAGER_B = AuthContext(user_id=MANAGER_B_ID, role=Role.MANAGER, team_id=TEAM_B)
ADMIN = AuthContext(user_id=ADMIN_ID, role=Role.ADMIN)

# Thursday 2026-01-29, midday at UTC+07:00.
NOW = datetime(2026, 1, 29, 5, 0, tzinfo=UTC)


def headers_for(auth: AuthContext) -> dict[str, str]:
    """Dev auth headers for ``auth``."""
    headers = {"X-User-Id": str(auth.user_id), "X-Role": auth.role.value}
    if auth.team_id is not None:
        headers["X-Team-Id"] = str(auth.team_id)
    return headers


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh database per test.

    Defaults to in-memory SQLite; set TEST_DATABASE_URL to run against Postgres.
    """
    url = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    if url.startswith("sqlite"):
        _engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        _engine = create_async_engine(url)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session; services commit through it like in production."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def grace() -> GraceSettings:
    """Default thresholds, independent of the process environment."""
    return GraceSettings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def uow() -> UnitOfWork:
    return SequentialUnitOfWork()


@pytest.fixture(autouse=True)
def _reset_grace() -> Iterator[None]:
    reset_grace_settings()
    yield
    reset_grace_settings()


@pytest.fixture(autouse=True)
def directory() -> Iterator[InMemoryDirectoryService]:
    """Seed the in-memory directory for every test."""
    svc = InMemoryDirectoryService()
    svc.seed(UserInfo(id=EMPLOYEE_ID, name="Employee A", employee_code="E001", role=Role.EMPLOYEE, team_id=TEAM_A))
    svc.seed(UserInfo(id=COLLEAGUE_ID, name="Colleague A", employee_code="E002", role=Role.EMPLOYEE, team_id=TEAM_A))
    svc.seed(UserInfo(id=MANAGER_A_ID, name="Manager A", employee_code="M001", role=Role.MANAGER, team_id=TEAM_A))
    svc.seed(UserInfo(id=MANAGER_B_ID, name="Manager B", employee_code="M002", role=Role.MANAGER, team_id=TEAM_B))
    svc.seed(UserInfo(id=ADMIN_ID, name="Admin", employee_code="A001", role=Role.ADMIN))
    svc.seed(UserInfo(id=INACTIVE_ID, name="Former", employee_code="E003", team_id=TEAM_A, is_active=False))
    svc.seed(UserInfo(id=NO_TEAM_ID, name="Floater", employee_code="E004"))
    set_directory_service(svc)
    yield svc
    set_directory_service(InMemoryDirectoryService())


@pytest.fixture
async def async_client(db_session: AsyncSession, uow: UnitOfWork) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the session and unit-of-work dependencies overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_unit_of_work] = lambda: uow
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
