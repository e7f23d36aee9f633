"""Tests for the unit-of-work strategies."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError

from attendance_workflow.exceptions import ConflictError
from attendance_workflow.models.holiday import Holiday
from attendance_workflow.uow import (
    SequentialUnitOfWork,
    TransactionalUnitOfWork,
    build_unit_of_work,
    get_unit_of_work,
    set_unit_of_work,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession


class _SerializationFailure(Exception):
    sqlstate = "40001"


async def _holiday_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Holiday))
    return result.scalar_one()


async def test_transactional_commits_on_success(db_session: AsyncSession) -> None:
    uow = TransactionalUnitOfWork(isolation_level=None)

    async def work(session: AsyncSession) -> str:
        session.add(Holiday(date=date(2026, 4, 30), name="Reunification Day"))
        await uow.checkpoint(session)
        return "done"

    assert await uow.run(db_session, work) == "done"
    assert await _holiday_count(db_session) == 1


async def test_transactional_rolls_back_everything(db_session: AsyncSession) -> None:
    uow = TransactionalUnitOfWork(isolation_level=None)

    async def work(session: AsyncSession) -> None:
        session.add(Holiday(date=date(2026, 4, 30), name="Reunification Day"))
        await uow.checkpoint(session)
        session.add(Holiday(date=date(2026, 5, 1), name="Labour Day"))
        msg = "boom"
        raise RuntimeError(msg)

    with pytest.raises(RuntimeError, match="boom"):
        await uow.run(db_session, work)
    assert await _holiday_count(db_session) == 0


async def test_sequential_keeps_checkpointed_steps(db_session: AsyncSession) -> None:
    uow = SequentialUnitOfWork()

    async def work(session: AsyncSession) -> None:
        session.add(Holiday(date=date(2026, 4, 30), name="Reunification Day"))
        await uow.checkpoint(session)
        session.add(Holiday(date=date(2026, 5, 1), name="Labour Day"))
        msg = "boom"
        raise RuntimeError(msg)

    with pytest.raises(RuntimeError, match="boom"):
        await uow.run(db_session, work)
    assert await _holiday_count(db_session) == 1


async def test_serialization_failure_becomes_conflict(db_session: AsyncSession) -> None:
    uow = TransactionalUnitOfWork(isolation_level=None)

    async def work(session: AsyncSession) -> None:
        raise DBAPIError("UPDATE attendance_request", {}, _SerializationFailure("could not serialize access"))

    with pytest.raises(ConflictError, match="modified concurrently"):
        await uow.run(db_session, work)


async def test_other_database_errors_propagate(db_session: AsyncSession) -> None:
    uow = TransactionalUnitOfWork(isolation_level=None)

    async def work(session: AsyncSession) -> None:
        raise DBAPIError("SELECT 1", {}, Exception("connection reset"))

    with pytest.raises(DBAPIError):
        await uow.run(db_session, work)


async def test_build_explicit_modes(engine: AsyncEngine) -> None:
    assert isinstance(await build_unit_of_work("sequential", engine), SequentialUnitOfWork)
    assert isinstance(await build_unit_of_work("transactional", engine), TransactionalUnitOfWork)


async def test_build_auto_probes_database(engine: AsyncEngine) -> None:
    uow = await build_unit_of_work("auto", engine)
    if engine.dialect.name == "sqlite":
        assert uow.name == "sequential"
    else:
        assert uow.name == "transactional"


def test_set_unit_of_work() -> None:
    original = get_unit_of_work()
    replacement = TransactionalUnitOfWork()
    set_unit_of_work(replacement)
    try:
        assert get_unit_of_work() is replacement
    finally:
        set_unit_of_work(original)
