"""
Employee roster endpoints.

- GET operations require any authenticated operator and never expose codes.
- POST / PUT operations require the admin role and return the current code.
- There is no DELETE: employees are deactivated, and their attendance
  history is preserved.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.api.v1.deps import (get_current_active_user, get_db, get_ledger,
                                   get_roster, require_admin)
from headcount.models.employee import Employee
from headcount.models.user import User
from headcount.repositories.attendance_ledger import (AttendanceLedger,
                                                      calendar_day)
from headcount.schemas.employee import (AttendanceCheck, EmployeeAdminRead,
                                        EmployeeCode, EmployeeCreate,
                                        EmployeeRead, EmployeeUpdate)
from headcount.services.roster import RosterService

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    search: str | None = None,
    department: str | None = None,
    is_active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _user: User = Depends(get_current_active_user),
) -> list[Employee]:
    return await roster.list_employees(
        db,
        search=search,
        department=department,
        is_active=is_active,
        skip=skip,
        limit=limit,
    )


@router.get("/departments", response_model=list[str])
async def list_departments(
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _user: User = Depends(get_current_active_user),
) -> list[str]:
    """Distinct departments of active employees."""
    return await roster.list_departments(db)


@router.post("", response_model=EmployeeAdminRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    return await roster.create_employee(db, **body.model_dump())


@router.get("/{phone}", response_model=EmployeeRead)
async def get_employee(
    phone: str,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _user: User = Depends(get_current_active_user),
) -> Employee:
    return await roster.get_employee(db, phone)


@router.get("/{phone}/code", response_model=EmployeeCode)
async def get_employee_code(
    phone: str,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    """Current code, for reprinting a badge."""
    return await roster.get_employee(db, phone)


@router.put("/{phone}", response_model=EmployeeAdminRead)
async def update_employee(
    phone: str,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    """Edit roster details. Changing the name issues a new code."""
    return await roster.update_employee(db, phone, body.model_dump(exclude_unset=True))


@router.post("/{phone}/regenerate-code", response_model=EmployeeAdminRead)
async def regenerate_code(
    phone: str,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    return await roster.regenerate_code(db, phone)


@router.post("/{phone}/deactivate", response_model=EmployeeAdminRead)
async def deactivate_employee(
    phone: str,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    """Soft-delete: scans now yield ``inactive``; the code is kept."""
    return await roster.deactivate(db, phone)


@router.post("/{phone}/reactivate", response_model=EmployeeAdminRead)
async def reactivate_employee(
    phone: str,
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    _admin: User = Depends(require_admin),
) -> Employee:
    return await roster.reactivate(db, phone)


@router.get("/{phone}/attendance", response_model=AttendanceCheck)
async def check_attendance(
    phone: str,
    day: str | None = Query(default=None, description="YYYY-MM-DD, defaults to today"),
    db: AsyncSession = Depends(get_db),
    roster: RosterService = Depends(get_roster),
    ledger: AttendanceLedger = Depends(get_ledger),
    _user: User = Depends(get_current_active_user),
) -> AttendanceCheck:
    """Whether the employee has a successful scan on *day*."""
    if day is None:
        target = calendar_day(datetime.now(timezone.utc), ledger.tz)
    else:
        try:
            target = date.fromisoformat(day)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format, use YYYY-MM-DD")

    employee = await roster.get_employee(db, phone)
    first = await ledger.first_success_on(db, employee.phone, target)
    return AttendanceCheck(
        phone=employee.phone,
        day=target.isoformat(),
        attended=first is not None,
        first_scan_at=first,
    )
