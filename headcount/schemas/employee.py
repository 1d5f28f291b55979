"""Pydantic schemas for roster management."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

_PHONE_RE = re.compile(r"^\+?[0-9][0-9 ().-]{2,28}$")


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be empty")
    if len(v) > 200:
        raise ValueError("Name must not exceed 200 characters")
    return v


def _clean_optional(v: str | None, limit: int, label: str) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > limit:
        raise ValueError(f"{label} must not exceed {limit} characters")
    return v or None


def _clean_email(v: str | None) -> str | None:
    v = _clean_optional(v, 320, "Email")
    if v is not None and "@" not in v:
        raise ValueError("Invalid email address")
    return v.lower() if v else v


class EmployeeCreate(BaseModel):
    phone: str
    name: str
    department: str | None = None
    employee_number: str | None = None
    email: str | None = None

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        v = v.strip()
        if not _PHONE_RE.match(v):
            raise ValueError("Phone must be 3-30 characters of digits, spaces, dots, dashes")
        return v

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("department")
    @classmethod
    def _department(cls, v: str | None) -> str | None:
        return _clean_optional(v, 100, "Department")

    @field_validator("employee_number")
    @classmethod
    def _employee_number(cls, v: str | None) -> str | None:
        return _clean_optional(v, 50, "Employee number")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _clean_email(v)


class EmployeeUpdate(BaseModel):
    name: str | None = None
    department: str | None = None
    employee_number: str | None = None
    email: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Name must not be null")
        return _clean_name(v)

    @field_validator("department")
    @classmethod
    def _department(cls, v: str | None) -> str | None:
        return _clean_optional(v, 100, "Department")

    @field_validator("employee_number")
    @classmethod
    def _employee_number(cls, v: str | None) -> str | None:
        return _clean_optional(v, 50, "Employee number")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return _clean_email(v)


class EmployeeRead(BaseModel):
    phone: str
    name: str
    department: str | None
    employee_number: str | None
    email: str | None
    is_active: bool
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class EmployeeAdminRead(EmployeeRead):
    """Roster view for administrators; includes the code for printing."""

    code: str


class EmployeeCode(BaseModel):
    phone: str
    code: str

    model_config = {"from_attributes": True}


class AttendanceCheck(BaseModel):
    phone: str
    day: str
    attended: bool
    first_scan_at: datetime | None = None
