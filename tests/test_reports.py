"""Tests for ledger reporting and health endpoints."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from httpx import AsyncClient

from headcount.api.v1.deps import get_current_active_user, require_admin
from headcount.main import app
from headcount.models.user import User


def _local_today() -> str:
    """Today's attendance day, matching what the ledger stores."""
    return datetime.now(timezone.utc).astimezone(ZoneInfo("Asia/Jakarta")).date().isoformat()


async def _seed_scans(client: AsyncClient, phone="555-0100", name="Reporter"):
    """Register an employee and produce success, duplicate and invalid rows for today."""
    resp = await client.post("/api/v1/employees", json={"phone": phone, "name": name})
    code = resp.json()["code"]
    await client.post("/api/v1/scan", json={"code": code})
    await client.post("/api/v1/scan", json={"code": code})
    await client.post("/api/v1/scan", json={"code": "0" * 64})
    return code


@pytest.mark.asyncio
async def test_attendance_today(async_client: AsyncClient):
    await _seed_scans(async_client)
    resp = await async_client.get("/api/v1/attendance/today")
    assert resp.status_code == 200
    data = resp.json()
    assert [r["status"] for r in data] == ["invalid", "duplicate", "success"]
    assert all(r["scan_date"] == _local_today() for r in data)


@pytest.mark.asyncio
async def test_records_carry_employee_name(async_client: AsyncClient):
    await _seed_scans(async_client, name="NameTest")
    resp = await async_client.get("/api/v1/attendance/records", params={"status": "success"})
    page = resp.json()
    assert page["total"] == 1
    assert page["records"][0]["employee_name"] == "NameTest"


@pytest.mark.asyncio
async def test_records_pagination_and_filters(async_client: AsyncClient):
    await _seed_scans(async_client)
    resp = await async_client.get("/api/v1/attendance/records", params={"skip": 1, "limit": 1})
    page = resp.json()
    assert page["total"] == 3
    assert page["skip"] == 1 and page["limit"] == 1
    assert len(page["records"]) == 1

    resp = await async_client.get(
        "/api/v1/attendance/records", params={"employee_phone": "555-0100"}
    )
    assert resp.json()["total"] == 2

    resp = await async_client.get(
        "/api/v1/attendance/records", params={"date_from": "2001-01-01", "date_to": "2001-01-02"}
    )
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_records_bad_date(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/attendance/records", params={"date_from": "03/02/2026"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_scanner_sees_only_own_scans(async_client: AsyncClient):
    await _seed_scans(async_client)  # submitted as the admin kiosk

    async def _scanner() -> User:
        return User(id=2, username="gate-scanner", is_active=True, role="scanner")

    app.dependency_overrides[get_current_active_user] = _scanner
    app.dependency_overrides.pop(require_admin, None)

    await async_client.post("/api/v1/scan", json={"code": "1" * 64})
    resp = await async_client.get(
        "/api/v1/attendance/records", params={"device_id": "kiosk-test"}
    )
    page = resp.json()
    assert page["total"] == 1
    assert page["records"][0]["device_id"] == "gate-scanner"


@pytest.mark.asyncio
async def test_daily_report(async_client: AsyncClient):
    await _seed_scans(async_client)
    resp = await async_client.get(f"/api/v1/reports/daily/{_local_today()}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["date"] == _local_today()
    assert data["total_scans"] == 3
    assert data["successful_scans"] == 1
    assert data["duplicate_scans"] == 1
    assert data["invalid_scans"] == 1
    assert data["inactive_scans"] == 0


@pytest.mark.asyncio
async def test_daily_report_bad_date(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/reports/daily/not-a-date")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"
    assert "version" in data
