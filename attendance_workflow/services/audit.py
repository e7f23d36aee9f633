from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from attendance_workflow.models.audit import AuditLog
from attendance_workflow.models.enums import AuditEntityType

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from attendance_workflow.models.enums import AuditAction
    from attendance_workflow.models.request import AttendanceRequest


def model_to_audit_dict(model: SQLModel, *, exclude_none: bool = False) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for audit logging."""
    data: dict[str, Any] = {}
    for key, value in model.model_dump().items():
        if value is None and exclude_none:
            continue
        if isinstance(value, uuid.UUID):
            data[key] = str(value)
        elif isinstance(value, (datetime, date)):
            data[key] = value.isoformat()
        elif isinstance(value, enum.Enum):
            data[key] = value.value
        else:
            data[key] = value
    return data


def changed_fields(
    before: dict[str, Any],
    after: dict[str, Any],
    ignore: Collection[str] = ("updated_at",),
) -> dict[str, Any]:
    """Keys of ``after`` whose value differs from ``before``."""
    return {k: v for k, v in after.items() if k not in ignore and before.get(k) != v}


async def write_audit_log(
    session: AsyncSession,
    *,
    actor_id: uuid.UUID,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Write an immutable audit log entry within the caller's unit of work."""
    entry = AuditLog(
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        before_json=before_json,
        after_json=after_json,
    )
    session.add(entry)
    return entry


async def audit_request(
    session: AsyncSession,
    actor_id: uuid.UUID,
    request: AttendanceRequest,
    action: AuditAction,
    before: dict[str, Any] | None = None,
) -> AuditLog:
    """Record a request mutation; ``before`` is None for creations."""
    after = model_to_audit_dict(request, exclude_none=True)
    return await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.REQUEST,
        entity_id=request.id,
        action=action,
        before_json=changed_fields(after, before) if before is not None else None,
        after_json=changed_fields(before, after) if before is not None else after,
    )
