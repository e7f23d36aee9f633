# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from attendance_workflow.models.base import UTCDateTime, UUIDBase


def _now_utc() -> datetime:
    return datetime.now(UTC)


class AuditLog(UUIDBase, table=True):
    """One row per request lifecycle step or attendance write.

    ``entity_type`` is REQUEST (create, extend, cancel, approve, reject) or
    ATTENDANCE (reconcile). The ``after`` snapshot of a request holds only the
    fields that are set, so an ADJUST_TIME entry carries no OT columns. A
    request's history is read by ``entity_id`` in ``created_at`` order, and an
    approver's decisions by ``actor_id``.
    """

    __tablename__ = "audit_log"
    __table_args__ = (
        sa.Index("ix_audit_entity_history", "entity_id", "created_at"),
        sa.Index("ix_audit_actor_history", "actor_id", "created_at"),
    )

    actor_id: uuid.UUID
    entity_type: str = Field(max_length=50)
    entity_id: uuid.UUID
    action: str = Field(max_length=50)
    before_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    after_json: dict[str, Any] | None = Field(default=None, sa_type=sa.JSON)
    created_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=UTCDateTime,  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
