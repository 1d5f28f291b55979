"""
AttendanceRecord model: append-only ledger of scan attempts.

Every submission leaves exactly one row. Only ``success`` rows are
constrained: the partial unique index ``uq_attendance_success_per_day``
allows a single success per employee per calendar day, and it is the
only thing that decides which of several concurrent scans wins.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (CheckConstraint, Column, Date, DateTime, ForeignKey,
                        Index, Integer, String, text)
from sqlalchemy.orm import relationship

from headcount.core.enums import ScanStatus
from headcount.db.base import Base

_SUCCESS_ONLY = text(f"status = '{ScanStatus.SUCCESS.value}'")
_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in ScanStatus)

SUCCESS_PER_DAY_INDEX = "uq_attendance_success_per_day"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        Index(
            SUCCESS_PER_DAY_INDEX,
            "employee_phone",
            "scan_date",
            unique=True,
            postgresql_where=_SUCCESS_ONLY,
            sqlite_where=_SUCCESS_ONLY,
        ),
        Index("ix_attendance_daily_lookup", "employee_phone", "scan_date", "status"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_attendance_status"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    # NULL for codes that resolved to nobody
    employee_phone: str | None = Column(  # type: ignore[assignment]
        String(30), ForeignKey("employees.phone"), nullable=True, index=True
    )
    device_id: str = Column(String(100), nullable=False, index=True)  # type: ignore[assignment]
    scan_timestamp: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    scan_date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, index=True)  # type: ignore[assignment]
    validation_message: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="attendance_records")
