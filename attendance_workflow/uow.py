"""Unit-of-work strategies for multi-write operations.

Approval writes to two rows (the request and the attendance record). Where
the database offers snapshot isolation both writes share one transaction;
otherwise each step is committed as it completes and reconciliation is
relied upon to be idempotent.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Annotated, ClassVar, Literal, TypeVar

import sqlalchemy as sa
from fastapi import Depends
from sqlalchemy.exc import ArgumentError, DBAPIError

from attendance_workflow.exceptions import ConflictError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_ISOLATION = "REPEATABLE READ"
# SQLSTATE for serialization_failure.
_SERIALIZATION_FAILURE = "40001"


def _is_serialization_failure(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == _SERIALIZATION_FAILURE


class UnitOfWork(abc.ABC):
    """Runs a unit of work against a session and owns its commit/rollback."""

    name: ClassVar[str]

    @abc.abstractmethod
    async def run(self, session: AsyncSession, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Execute ``work`` and make its writes durable, or discard them on error."""

    @abc.abstractmethod
    async def checkpoint(self, session: AsyncSession) -> None:
        """Mark the boundary between two independent writes."""


class TransactionalUnitOfWork(UnitOfWork):
    """All writes in one transaction at snapshot isolation; any error rolls everything back."""

    name = "transactional"

    def __init__(self, isolation_level: str | None = SNAPSHOT_ISOLATION) -> None:
        self.isolation_level = isolation_level

    async def run(self, session: AsyncSession, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        if self.isolation_level is not None:
            if session.in_transaction():
                logger.debug("Session already in a transaction; keeping its isolation level")
            else:
                await session.connection(execution_options={"isolation_level": self.isolation_level})
        try:
            result = await work(session)
            await session.commit()
        except DBAPIError as exc:
            await session.rollback()
            if _is_serialization_failure(exc):
                logger.warning("Serialization failure, reporting as conflict: %s", exc.orig)
                raise ConflictError("Request was modified concurrently, please retry") from None
            raise
        except BaseException:
            await session.rollback()
            raise
        return result

    async def checkpoint(self, session: AsyncSession) -> None:
        await session.flush()


class SequentialUnitOfWork(UnitOfWork):
    """Each step is committed on its own.

    A failure after a checkpoint keeps the earlier steps. For approvals this
    can leave an APPROVED request whose attendance effect is missing; running
    reconciliation again repairs it.
    """

    name = "sequential"

    async def run(self, session: AsyncSession, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            result = await work(session)
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        return result

    async def checkpoint(self, session: AsyncSession) -> None:
        await session.commit()


async def probe_snapshot_isolation(engine: AsyncEngine) -> bool:
    """Return True when the database accepts a snapshot-isolation transaction."""
    try:
        async with engine.connect() as conn:
            conn = await conn.execution_options(isolation_level=SNAPSHOT_ISOLATION)
            await conn.execute(sa.text("SELECT 1"))
    except (ArgumentError, DBAPIError) as exc:
        logger.info("Snapshot isolation unavailable on %s: %s", engine.dialect.name, exc)
        return False
    return True


async def build_unit_of_work(
    mode: Literal["auto", "transactional", "sequential"],
    engine: AsyncEngine,
) -> UnitOfWork:
    """Choose the unit-of-work strategy once, at startup."""
    if mode == "transactional":
        uow: UnitOfWork = TransactionalUnitOfWork()
    elif mode == "sequential":
        uow = SequentialUnitOfWork()
    elif await probe_snapshot_isolation(engine):
        uow = TransactionalUnitOfWork()
    else:
        uow = SequentialUnitOfWork()

    if isinstance(uow, SequentialUnitOfWork):
        logger.warning(
            "Using sequential unit of work: approvals are not atomic with attendance updates "
            "(mode=%s, dialect=%s)",
            mode,
            engine.dialect.name,
        )
    else:
        logger.info("Using transactional unit of work (mode=%s, dialect=%s)", mode, engine.dialect.name)
    return uow


_unit_of_work: UnitOfWork = SequentialUnitOfWork()


def get_unit_of_work() -> UnitOfWork:
    """FastAPI dependency for the process-wide unit-of-work strategy."""
    return _unit_of_work


def set_unit_of_work(uow: UnitOfWork) -> None:
    """Install the strategy selected at startup (or a test double)."""
    global _unit_of_work
    _unit_of_work = uow


UnitOfWorkDep = Annotated[UnitOfWork, Depends(get_unit_of_work)]
