"""Pydantic schemas for scanning and the attendance ledger."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from headcount.core.enums import ScanStatus

MAX_CODE_LENGTH = 256


# ── Scan ────────────────────────────────────────────────────────────
class ScanRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def _code(cls, v: str) -> str:
        # Unknown codes are an outcome, not a validation error; only junk
        # that cannot be a code at all is refused here.
        v = v.strip()
        if not v:
            raise ValueError("Code must not be empty")
        if len(v) > MAX_CODE_LENGTH:
            raise ValueError(f"Code must not exceed {MAX_CODE_LENGTH} characters")
        return v


class ScanResponse(BaseModel):
    success: bool
    status: ScanStatus
    message: str
    employee_name: str | None = None
    timestamp: datetime | None = None


# ── Ledger ──────────────────────────────────────────────────────────
class AttendanceRecordRead(BaseModel):
    id: int
    employee_phone: str | None
    employee_name: str | None = None  # joined from employees
    device_id: str
    scan_timestamp: datetime
    scan_date: str
    status: ScanStatus
    validation_message: str | None = None


class AttendanceRecordPage(BaseModel):
    records: list[AttendanceRecordRead]
    total: int
    skip: int
    limit: int


class DailyReportResponse(BaseModel):
    date: str
    total_scans: int
    successful_scans: int
    duplicate_scans: int
    invalid_scans: int
    inactive_scans: int


# ── Misc ────────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str
    database: str
    version: str


class LogoutResponse(BaseModel):
    success: bool = True
    message: str
