from sqlmodel import SQLModel

from attendance_workflow.models.attendance import Attendance
from attendance_workflow.models.audit import AuditLog
from attendance_workflow.models.base import TimestampMixin, UTCDateTime, UUIDBase
from attendance_workflow.models.enums import (
    AuditAction,
    AuditEntityType,
    DayStatus,
    LeaveType,
    RequestStatus,
    RequestType,
    Role,
)
from attendance_workflow.models.holiday import Holiday
from attendance_workflow.models.request import AttendanceRequest

__all__ = [
    "Attendance",
    "AttendanceRequest",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "DayStatus",
    "Holiday",
    "LeaveType",
    "RequestStatus",
    "RequestType",
    "Role",
    "SQLModel",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDBase",
]
