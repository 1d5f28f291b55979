"""
Read-only reporting over the attendance ledger, plus health.

Admins see every record; scanner accounts only see the scans they
submitted themselves.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.api.v1.deps import get_current_active_user, get_db, get_ledger
from headcount.core.config import settings
from headcount.core.enums import OperatorRole, ScanStatus
from headcount.models.attendance import AttendanceRecord
from headcount.models.user import User
from headcount.repositories.attendance_ledger import (AttendanceLedger,
                                                      calendar_day,
                                                      ensure_utc)
from headcount.schemas.attendance import (AttendanceRecordPage,
                                          AttendanceRecordRead,
                                          DailyReportResponse, HealthResponse)

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")


def _visible_device(user: User, requested: str | None) -> str | None:
    """Scanner accounts are pinned to their own device id."""
    if user.role == OperatorRole.ADMIN.value:
        return requested
    return user.username


def _to_read(record: AttendanceRecord, name: str | None) -> AttendanceRecordRead:
    return AttendanceRecordRead(
        id=record.id,
        employee_phone=record.employee_phone,
        employee_name=name,
        device_id=record.device_id,
        scan_timestamp=ensure_utc(record.scan_timestamp),
        scan_date=record.scan_date.isoformat(),
        status=ScanStatus(record.status),
        validation_message=record.validation_message,
    )


# ── Ledger ──────────────────────────────────────────────────────────
@router.get("/attendance/records", response_model=AttendanceRecordPage)
async def list_records(
    date_from: str | None = None,
    date_to: str | None = None,
    employee_phone: str | None = None,
    device_id: str | None = None,
    status: ScanStatus | None = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger),
    user: User = Depends(get_current_active_user),
) -> AttendanceRecordPage:
    """Paginated ledger rows, newest first."""
    rows, total = await ledger.list_records(
        db,
        date_from=_parse_day(date_from),
        date_to=_parse_day(date_to),
        employee_phone=employee_phone,
        device_id=_visible_device(user, device_id),
        status=status,
        skip=skip,
        limit=limit,
    )
    return AttendanceRecordPage(
        records=[_to_read(record, name) for record, name in rows],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/attendance/today", response_model=list[AttendanceRecordRead])
async def attendance_today(
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger),
    user: User = Depends(get_current_active_user),
) -> list[AttendanceRecordRead]:
    """Today's scans (in the attendance time zone) for the live feed."""
    today = calendar_day(datetime.now(timezone.utc), ledger.tz)
    rows, _total = await ledger.list_records(
        db,
        date_from=today,
        date_to=today,
        device_id=_visible_device(user, None),
        limit=limit,
    )
    return [_to_read(record, name) for record, name in rows]


@router.get("/reports/daily/{date_str}", response_model=DailyReportResponse)
async def daily_report(
    date_str: str,
    db: AsyncSession = Depends(get_db),
    ledger: AttendanceLedger = Depends(get_ledger),
    _user: User = Depends(get_current_active_user),
) -> DailyReportResponse:
    """Per-status totals for one attendance day."""
    day = _parse_day(date_str)
    report = await ledger.daily_report(db, day)
    return DailyReportResponse(
        date=report.day.isoformat(),
        total_scans=report.total_scans,
        successful_scans=report.count(ScanStatus.SUCCESS),
        duplicate_scans=report.count(ScanStatus.DUPLICATE),
        invalid_scans=report.count(ScanStatus.INVALID),
        inactive_scans=report.count(ScanStatus.INACTIVE),
    )


# ── Health ──────────────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Health check: database unreachable: %s", exc.__class__.__name__)
        db_status = "unreachable"
    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
        version=settings.VERSION,
    )
