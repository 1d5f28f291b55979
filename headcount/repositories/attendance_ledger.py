"""
Attendance Ledger: append-only record of scan attempts.

:meth:`AttendanceLedger.try_commit_success` is the only dedup gate: it
inserts and lets the partial unique index on ``(employee_phone, scan_date)``
reject the second success of the day. :meth:`has_succeeded_on` and
:meth:`first_success_on` exist only to phrase messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.core.enums import ScanStatus
from headcount.models.attendance import (SUCCESS_PER_DAY_INDEX,
                                         AttendanceRecord)
from headcount.models.employee import Employee
from headcount.repositories.base import storage_errors

logger = logging.getLogger(__name__)


class CommitResult(str, Enum):
    COMMITTED = "committed"
    ALREADY_EXISTS = "already_exists"


def ensure_utc(ts: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def calendar_day(ts: datetime, tz: ZoneInfo) -> date:
    """The attendance day of *ts* in the process-wide zone *tz*."""
    return ensure_utc(ts).astimezone(tz).date()


def _is_daily_success_conflict(exc: IntegrityError) -> bool:
    """True only when the one-success-per-day index rejected the insert.

    PostgreSQL names the index in its message; SQLite lists its columns.
    """
    message = str(exc.orig)
    if SUCCESS_PER_DAY_INDEX in message:
        return True
    return (
        "UNIQUE constraint failed" in message
        and "attendance_records.employee_phone" in message
        and "attendance_records.scan_date" in message
    )


@dataclass
class DailyReport:
    day: date
    total_scans: int = 0
    by_status: dict[str, int] = field(default_factory=dict)

    def count(self, status: ScanStatus) -> int:
        return self.by_status.get(status.value, 0)


class AttendanceLedger:
    def __init__(self, tz: ZoneInfo) -> None:
        self.tz = tz

    # ── Writes ──────────────────────────────────────────────────────
    async def try_commit_success(
        self,
        db: AsyncSession,
        employee_phone: str,
        device_id: str,
        timestamp: datetime,
    ) -> CommitResult:
        """Insert the day's success row, or report that one already exists.

        Exactly one of any number of concurrent callers for the same
        employee and day gets ``COMMITTED``; the rest get ``ALREADY_EXISTS``.
        """
        record = AttendanceRecord(
            employee_phone=employee_phone,
            device_id=device_id,
            scan_timestamp=ensure_utc(timestamp),
            scan_date=calendar_day(timestamp, self.tz),
            status=ScanStatus.SUCCESS.value,
            validation_message="Scan successful",
        )
        async with storage_errors("success commit"):
            db.add(record)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                if _is_daily_success_conflict(exc):
                    # Another success for this employee and day won the race
                    return CommitResult.ALREADY_EXISTS
                raise
        return CommitResult.COMMITTED

    async def record_non_success(
        self,
        db: AsyncSession,
        employee_phone: str | None,
        device_id: str,
        timestamp: datetime,
        status: ScanStatus,
        detail: str | None = None,
    ) -> None:
        """Append an ``invalid`` / ``inactive`` / ``duplicate`` row. No dedup."""
        if status is ScanStatus.SUCCESS:
            raise ValueError("Success rows must go through try_commit_success")

        record = AttendanceRecord(
            employee_phone=employee_phone,
            device_id=device_id,
            scan_timestamp=ensure_utc(timestamp),
            scan_date=calendar_day(timestamp, self.tz),
            status=status.value,
            validation_message=detail,
        )
        async with storage_errors("ledger append"):
            db.add(record)
            await db.commit()

    # ── Reads ───────────────────────────────────────────────────────
    async def first_success_on(
        self, db: AsyncSession, employee_phone: str, day: date
    ) -> datetime | None:
        async with storage_errors("ledger read"):
            result = await db.execute(
                select(AttendanceRecord.scan_timestamp)
                .where(
                    AttendanceRecord.employee_phone == employee_phone,
                    AttendanceRecord.scan_date == day,
                    AttendanceRecord.status == ScanStatus.SUCCESS.value,
                )
                .limit(1)
            )
            ts = result.scalar_one_or_none()
        return ensure_utc(ts) if ts is not None else None

    async def has_succeeded_on(self, db: AsyncSession, employee_phone: str, day: date) -> bool:
        """Message helper only; never use it to decide a commit."""
        return await self.first_success_on(db, employee_phone, day) is not None

    async def list_records(
        self,
        db: AsyncSession,
        *,
        date_from: date | None = None,
        date_to: date | None = None,
        employee_phone: str | None = None,
        device_id: str | None = None,
        status: ScanStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[tuple[AttendanceRecord, str | None]], int]:
        """Newest-first page of ledger rows joined with the employee name, plus total."""
        filters = []
        if date_from is not None:
            filters.append(AttendanceRecord.scan_date >= date_from)
        if date_to is not None:
            filters.append(AttendanceRecord.scan_date <= date_to)
        if employee_phone:
            filters.append(AttendanceRecord.employee_phone == employee_phone)
        if device_id:
            filters.append(AttendanceRecord.device_id == device_id)
        if status is not None:
            filters.append(AttendanceRecord.status == status.value)

        async with storage_errors("ledger query"):
            total = await db.scalar(
                select(func.count(AttendanceRecord.id)).where(*filters)
            )
            result = await db.execute(
                select(AttendanceRecord, Employee.name)
                .outerjoin(Employee, Employee.phone == AttendanceRecord.employee_phone)
                .where(*filters)
                .order_by(AttendanceRecord.scan_timestamp.desc(), AttendanceRecord.id.desc())
                .offset(skip)
                .limit(limit)
            )
            rows = [(record, name) for record, name in result.all()]
        return rows, int(total or 0)

    async def daily_report(self, db: AsyncSession, day: date) -> DailyReport:
        async with storage_errors("ledger report"):
            result = await db.execute(
                select(AttendanceRecord.status, func.count(AttendanceRecord.id))
                .where(AttendanceRecord.scan_date == day)
                .group_by(AttendanceRecord.status)
            )
            counts = {status: int(n) for status, n in result.all()}
        return DailyReport(day=day, total_scans=sum(counts.values()), by_status=counts)
