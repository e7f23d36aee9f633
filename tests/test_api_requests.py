"""HTTP-level tests for the request and attendance endpoints.

These go through the real clock, so dates are derived from today at UTC+07:00.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
from conftest import ADMIN, COLLEAGUE_ID, EMPLOYEE, MANAGER_A, MANAGER_B, headers_for

from attendance_workflow.config import reset_grace_settings
from attendance_workflow.models.enums import Role
from attendance_workflow.schemas.auth import AuthContext
from attendance_workflow.services.dates import BUSINESS_TZ, is_weekend, local_date, month_key, utc_now

if TYPE_CHECKING:
    from httpx import AsyncClient

REQUESTS_URL = "/requests"
COLLEAGUE = AuthContext(user_id=COLLEAGUE_ID, role=Role.EMPLOYEE)


def _today() -> date:
    return local_date(utc_now())


def _recent_workday() -> date:
    day = _today() - timedelta(days=1)
    while is_weekend(day):
        day -= timedelta(days=1)
    return day


def _local_iso(day: date, hour: int, minute: int = 0) -> str:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=BUSINESS_TZ).isoformat()


def _adjust_body(day: date, **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "date": day.isoformat(),
        "requested_check_in_at": _local_iso(day, 8, 30),
        "requested_check_out_at": _local_iso(day, 17, 30),
        "reason": "Badge reader was down",
    }
    body.update(overrides)
    return body


def _ot_body(day: date, hour: int = 19) -> dict[str, Any]:
    return {
        "type": "OT_REQUEST",
        "date": day.isoformat(),
        "estimated_end_time": _local_iso(day, hour),
        "reason": "Release night",
    }


async def _create(client: AsyncClient, body: dict[str, Any], auth: AuthContext = EMPLOYEE) -> dict[str, Any]:
    resp = await client.post(REQUESTS_URL, json=body, headers=headers_for(auth))
    assert resp.status_code == 201, resp.text
    data: dict[str, Any] = resp.json()
    return data


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


async def test_create_adjust_time_defaults_type(async_client: AsyncClient) -> None:
    day = _recent_workday()
    data = await _create(async_client, _adjust_body(day))
    assert data["type"] == "ADJUST_TIME"
    assert data["status"] == "PENDING"
    assert data["date"] == day.isoformat()
    assert data["check_in_date"] == day.isoformat()
    assert data["check_out_date"] == day.isoformat()
    assert data["owner"]["name"] == "Employee A"
    assert data["owner"]["employee_code"] == "E001"


async def test_create_leave(async_client: AsyncClient) -> None:
    start = _today() + timedelta(days=14)
    data = await _create(
        async_client,
        {
            "type": "LEAVE",
            "leave_start_date": start.isoformat(),
            "leave_end_date": start.isoformat(),
            "leave_type": "SICK",
            "reason": "Doctor",
        },
    )
    assert data["type"] == "LEAVE"
    assert data["date"] is None
    assert data["leave_type"] == "SICK"
    assert data["leave_days_count"] == (0 if is_weekend(start) else 1)


async def test_missing_reason(async_client: AsyncClient) -> None:
    body = _adjust_body(_recent_workday())
    del body["reason"]
    resp = await async_client.post(REQUESTS_URL, json=body, headers=headers_for(EMPLOYEE))
    assert resp.status_code == 400
    data = resp.json()
    assert data["kind"] == "BAD_INPUT"
    assert data["detail"] == "Reason is required"


async def test_invalid_date_format(async_client: AsyncClient) -> None:
    body = _adjust_body(_recent_workday(), date="2026/01/29")
    resp = await async_client.post(REQUESTS_URL, json=body, headers=headers_for(EMPLOYEE))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid date format. Expected YYYY-MM-DD"


async def test_missing_identity_header(async_client: AsyncClient) -> None:
    resp = await async_client.post(REQUESTS_URL, json=_adjust_body(_recent_workday()))
    assert resp.status_code == 400
    assert resp.json()["kind"] == "BAD_INPUT"


async def test_duplicate_pending_is_409(async_client: AsyncClient) -> None:
    day = _recent_workday()
    await _create(async_client, _adjust_body(day))
    resp = await async_client.post(REQUESTS_URL, json=_adjust_body(day), headers=headers_for(EMPLOYEE))
    assert resp.status_code == 409
    assert resp.json()["kind"] == "CONFLICT"


async def test_invalid_grace_config_refuses_dependent_requests(
    async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CHECKOUT_GRACE_HOURS", "99")
    reset_grace_settings()

    resp = await async_client.post(
        REQUESTS_URL, json=_adjust_body(_recent_workday()), headers=headers_for(EMPLOYEE)
    )
    assert resp.status_code == 503
    assert resp.json()["kind"] == "CONFIGURATION"

    # LEAVE does not depend on the grace thresholds.
    start = _today() + timedelta(days=21)
    await _create(
        async_client,
        {
            "type": "LEAVE",
            "leave_start_date": start.isoformat(),
            "leave_end_date": start.isoformat(),
            "reason": "Errand",
        },
    )


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------


async def test_approve_flow_updates_month_statuses(async_client: AsyncClient) -> None:
    day = _recent_workday()
    created = await _create(async_client, _adjust_body(day))

    resp = await async_client.post(f"{REQUESTS_URL}/{created['id']}/approve", headers=headers_for(MANAGER_A))
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "APPROVED"
    assert data["approved_by"] == str(MANAGER_A.user_id)

    resp = await async_client.get(
        "/attendance/me/statuses", params={"month": month_key(day)}, headers=headers_for(EMPLOYEE)
    )
    assert resp.status_code == 200
    assert resp.json()["days"][day.isoformat()] == "PRESENT"


async def test_other_team_manager_forbidden(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))

    resp = await async_client.post(f"{REQUESTS_URL}/{created['id']}/approve", headers=headers_for(MANAGER_B))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You can only approve requests from your team"

    resp = await async_client.get(f"{REQUESTS_URL}/{created['id']}", headers=headers_for(EMPLOYEE))
    assert resp.json()["status"] == "PENDING"


async def test_employee_cannot_approve(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))
    resp = await async_client.post(f"{REQUESTS_URL}/{created['id']}/approve", headers=headers_for(EMPLOYEE))
    assert resp.status_code == 403


async def test_double_decision_is_409(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))
    url = f"{REQUESTS_URL}/{created['id']}"

    resp = await async_client.post(f"{url}/reject", headers=headers_for(MANAGER_A))
    assert resp.status_code == 200
    assert resp.json()["status"] == "REJECTED"

    resp = await async_client.post(f"{url}/approve", headers=headers_for(ADMIN))
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Request already rejected"


async def test_approve_unknown_request(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{REQUESTS_URL}/{uuid.uuid4()}/approve", headers=headers_for(ADMIN))
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Listing and visibility
# ---------------------------------------------------------------------------


async def test_list_my_requests(async_client: AsyncClient) -> None:
    day = _recent_workday()
    created = await _create(async_client, _adjust_body(day))
    await _create(async_client, _ot_body(_today() + timedelta(days=1)))

    resp = await async_client.get(f"{REQUESTS_URL}/me", headers=headers_for(EMPLOYEE))
    assert resp.status_code == 200
    assert resp.json()["total"] == 2

    resp = await async_client.get(
        f"{REQUESTS_URL}/me", params={"status": "PENDING", "limit": 1}, headers=headers_for(EMPLOYEE)
    )
    data = resp.json()
    assert data["total"] == 2
    assert len(data["items"]) == 1

    await async_client.post(f"{REQUESTS_URL}/{created['id']}/reject", headers=headers_for(MANAGER_A))
    resp = await async_client.get(
        f"{REQUESTS_URL}/me", params={"status": "REJECTED"}, headers=headers_for(EMPLOYEE)
    )
    assert [item["id"] for item in resp.json()["items"]] == [created["id"]]

    resp = await async_client.get(f"{REQUESTS_URL}/me", headers=headers_for(COLLEAGUE))
    assert resp.json()["total"] == 0


async def test_list_pending_scoped_to_team(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))

    resp = await async_client.get(f"{REQUESTS_URL}/pending", headers=headers_for(MANAGER_A))
    assert resp.status_code == 200
    assert [item["id"] for item in resp.json()["items"]] == [created["id"]]

    resp = await async_client.get(f"{REQUESTS_URL}/pending", headers=headers_for(MANAGER_B))
    assert resp.json()["total"] == 0

    resp = await async_client.get(f"{REQUESTS_URL}/pending", headers=headers_for(ADMIN))
    assert resp.json()["total"] == 1

    resp = await async_client.get(f"{REQUESTS_URL}/pending", headers=headers_for(EMPLOYEE))
    assert resp.status_code == 403


async def test_get_request_visibility(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))
    url = f"{REQUESTS_URL}/{created['id']}"

    for auth in (EMPLOYEE, MANAGER_A, ADMIN):
        resp = await async_client.get(url, headers=headers_for(auth))
        assert resp.status_code == 200

    for auth in (COLLEAGUE, MANAGER_B):
        resp = await async_client.get(url, headers=headers_for(auth))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Overtime
# ---------------------------------------------------------------------------


async def test_ot_extend_and_cancel(async_client: AsyncClient) -> None:
    tomorrow = _today() + timedelta(days=1)
    first = await _create(async_client, _ot_body(tomorrow, hour=19))
    second = await _create(async_client, _ot_body(tomorrow, hour=21))
    assert second["id"] == first["id"]
    assert datetime.fromisoformat(second["estimated_end_time"]) == datetime.fromisoformat(_local_iso(tomorrow, 21))

    resp = await async_client.get(f"{REQUESTS_URL}/me", headers=headers_for(EMPLOYEE))
    assert resp.json()["total"] == 1

    resp = await async_client.delete(f"{REQUESTS_URL}/{first['id']}", headers=headers_for(EMPLOYEE))
    assert resp.status_code == 200
    assert resp.json() == {"message": "OT request cancelled successfully", "request_id": first["id"]}

    resp = await async_client.delete(f"{REQUESTS_URL}/{first['id']}", headers=headers_for(EMPLOYEE))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "OT request not found or already processed"


async def test_cancel_requires_ownership(async_client: AsyncClient) -> None:
    created = await _create(async_client, _ot_body(_today() + timedelta(days=1)))
    resp = await async_client.delete(f"{REQUESTS_URL}/{created['id']}", headers=headers_for(COLLEAGUE))
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Attendance and reconciliation
# ---------------------------------------------------------------------------


async def test_month_statuses_invalid_month(async_client: AsyncClient) -> None:
    for month in ("2026-13", "January"):
        resp = await async_client.get(
            "/attendance/me/statuses", params={"month": month}, headers=headers_for(EMPLOYEE)
        )
        assert resp.status_code == 400


async def test_reconcile_admin_only(async_client: AsyncClient) -> None:
    created = await _create(async_client, _adjust_body(_recent_workday()))
    url = f"{REQUESTS_URL}/{created['id']}/reconcile"

    resp = await async_client.post(url, headers=headers_for(MANAGER_A))
    assert resp.status_code == 403

    resp = await async_client.post(url, headers=headers_for(ADMIN))
    assert resp.status_code == 400

    await async_client.post(f"{REQUESTS_URL}/{created['id']}/approve", headers=headers_for(ADMIN))
    resp = await async_client.post(url, headers=headers_for(ADMIN))
    assert resp.status_code == 200
    data = resp.json()
    assert data["request_id"] == created["id"]
    assert data["attendance"]["date"] == created["check_in_date"]
