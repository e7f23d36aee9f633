from __future__ import annotations

import enum


class RequestType(enum.StrEnum):
    """Kind of attendance request."""

    ADJUST_TIME = "ADJUST_TIME"
    LEAVE = "LEAVE"
    OT_REQUEST = "OT_REQUEST"


class RequestStatus(enum.StrEnum):
    """State machine for attendance requests. Non-PENDING states are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LeaveType(enum.StrEnum):
    """Category of a leave request."""

    ANNUAL = "ANNUAL"
    SICK = "SICK"
    UNPAID = "UNPAID"


class Role(enum.StrEnum):
    """Directory role of a user."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class DayStatus(enum.StrEnum):
    """Attendance status of a single calendar day for one user."""

    WEEKEND_OR_HOLIDAY = "WEEKEND_OR_HOLIDAY"
    LEAVE = "LEAVE"
    ABSENT = "ABSENT"
    WORKING = "WORKING"
    MISSING_CHECKOUT = "MISSING_CHECKOUT"
    PRESENT = "PRESENT"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    REQUEST = "REQUEST"
    ATTENDANCE = "ATTENDANCE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    EXTEND = "EXTEND"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    RECONCILE = "RECONCILE"
