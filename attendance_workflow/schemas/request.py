# ruff: noqa: TC001, TC003
from __future__ import annotations

import datetime
import re
import uuid
from typing import Annotated, Any, Literal, Self

from pydantic import (
    AwareDatetime,
    BaseModel,
    BeforeValidator,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    computed_field,
    model_validator,
)

from attendance_workflow.exceptions import bad_input_from_validation
from attendance_workflow.models.enums import LeaveType, RequestStatus, RequestType

MAX_REASON_LENGTH = 1000

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _strict_date_key(value: Any, info: ValidationInfo) -> Any:
    """Accept only ``YYYY-MM-DD`` strings (or already-parsed dates)."""
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        msg = f"Invalid {info.field_name} format. Expected YYYY-MM-DD"
        raise ValueError(msg)
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        msg = f"Invalid {info.field_name}: {value} is not a calendar date"
        raise ValueError(msg) from None


DateKey = Annotated[datetime.date, BeforeValidator(_strict_date_key)]

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class _RequestPayloadBase(BaseModel):
    reason: str = Field(max_length=MAX_REASON_LENGTH)

    @model_validator(mode="before")
    @classmethod
    def _normalize_reason(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        reason = data.get("reason")
        if reason is None or (isinstance(reason, str) and not reason.strip()):
            msg = "Reason is required"
            raise ValueError(msg)
        if isinstance(reason, str):
            trimmed = reason.strip()
            if len(trimmed) > MAX_REASON_LENGTH:
                msg = f"Reason must be {MAX_REASON_LENGTH} characters or less"
                raise ValueError(msg)
            data = {**data, "reason": trimmed}
        return data


class AdjustTimePayload(_RequestPayloadBase):
    """Correct the check-in and/or check-out of one attendance day.

    ``date`` is the anchor day: the day of the check-in. A checkout on the
    following day expresses a cross-midnight session.
    """

    type: Literal["ADJUST_TIME"] = "ADJUST_TIME"
    date: DateKey
    requested_check_in_at: AwareDatetime | None = None
    requested_check_out_at: AwareDatetime | None = None

    @model_validator(mode="after")
    def _validate_times(self) -> Self:
        if self.requested_check_in_at is None and self.requested_check_out_at is None:
            msg = "At least one of requested_check_in_at or requested_check_out_at is required"
            raise ValueError(msg)
        if (
            self.requested_check_in_at is not None
            and self.requested_check_out_at is not None
            and self.requested_check_out_at <= self.requested_check_in_at
        ):
            msg = "requested_check_out_at must be after requested_check_in_at"
            raise ValueError(msg)
        return self


class LeavePayload(_RequestPayloadBase):
    """Request leave for an inclusive range of days."""

    type: Literal["LEAVE"] = "LEAVE"
    leave_start_date: DateKey
    leave_end_date: DateKey
    leave_type: LeaveType | None = None


class OtRequestPayload(_RequestPayloadBase):
    """Announce overtime on ``date`` lasting until ``estimated_end_time``."""

    type: Literal["OT_REQUEST"] = "OT_REQUEST"
    date: DateKey
    estimated_end_time: AwareDatetime


def _payload_discriminator(v: Any) -> str:
    """Discriminate create payloads by ``type``; a missing type means ADJUST_TIME."""
    t = v.get("type") if isinstance(v, dict) else getattr(v, "type", None)
    if t is None:
        return RequestType.ADJUST_TIME.value
    return str(t)


CreateRequestPayload = Annotated[
    Annotated[AdjustTimePayload, Tag(RequestType.ADJUST_TIME.value)]
    | Annotated[LeavePayload, Tag(RequestType.LEAVE.value)]
    | Annotated[OtRequestPayload, Tag(RequestType.OT_REQUEST.value)],
    Discriminator(_payload_discriminator),
]

_payload_adapter: TypeAdapter[CreateRequestPayload] = TypeAdapter(CreateRequestPayload)


def parse_request_payload(data: Any) -> AdjustTimePayload | LeavePayload | OtRequestPayload:
    """Validate a raw create payload, raising BadInputError on any violation."""
    try:
        return _payload_adapter.validate_python(data)
    except ValidationError as exc:
        raise bad_input_from_validation(exc) from None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OwnerProfile(BaseModel):
    """Minimal public profile of a request's owner."""

    id: uuid.UUID
    name: str
    employee_code: str | None
    team_id: uuid.UUID | None


class RequestResponse(BaseModel):
    """Response schema for a single attendance request."""

    id: uuid.UUID
    user_id: uuid.UUID
    type: RequestType
    status: RequestStatus
    reason: str
    check_in_date: datetime.date | None
    check_out_date: datetime.date | None
    requested_check_in_at: datetime.datetime | None
    requested_check_out_at: datetime.datetime | None
    leave_start_date: datetime.date | None
    leave_end_date: datetime.date | None
    leave_type: LeaveType | None
    leave_days_count: int | None
    estimated_end_time: datetime.datetime | None
    actual_ot_minutes: int | None
    approved_by: uuid.UUID | None
    approved_at: datetime.datetime | None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    owner: OwnerProfile | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def date(self) -> datetime.date | None:
        """Legacy single-day field; mirrors ``check_in_date`` for day-based types."""
        if self.type == RequestType.LEAVE:
            return None
        return self.check_in_date


class RequestListResponse(BaseModel):
    """Paginated list of attendance requests."""

    items: list[RequestResponse]
    total: int


class CancelResponse(BaseModel):
    """Acknowledgement of a cancelled OT request."""

    message: str
    request_id: uuid.UUID
