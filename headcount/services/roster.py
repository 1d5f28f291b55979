"""
Roster operations: the inbound surface used by employee management.

Codes are only ever written through :meth:`CodeStore.put`; activation
changes never touch them.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.core.codes import CodeDeriver
from headcount.core.exceptions import ConflictError, EmployeeNotFoundError
from headcount.models.employee import Employee
from headcount.repositories.base import storage_errors
from headcount.repositories.code_store import CodeStore

logger = logging.getLogger(__name__)

# Fields roster management may change after creation. The phone is the
# natural key and the code is derived, so neither is listed.
_EDITABLE_FIELDS = {"name", "department", "employee_number", "email"}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")


class RosterService:
    def __init__(self, code_store: CodeStore, deriver: CodeDeriver) -> None:
        self.code_store = code_store
        self.deriver = deriver

    async def _load(self, db: AsyncSession, phone: str) -> Employee:
        async with storage_errors("employee lookup"):
            employee = await db.get(Employee, phone)
        if employee is None:
            raise EmployeeNotFoundError(f"Employee '{phone}' not found")
        return employee

    # ── Codes ───────────────────────────────────────────────────────
    async def derive_and_store(self, db: AsyncSession, phone: str, display_name: str) -> str:
        """Derive the code for *phone* / *display_name* and make it current.

        *display_name* becomes the employee's name in the same commit as the
        code, so the stored row always re-derives to the code it holds.
        """
        code = self.deriver.derive(phone, display_name)
        employee = await self._load(db, phone.strip())
        employee.name = display_name.strip()
        await self.code_store.put(db, employee.phone, code)
        return code

    async def regenerate_code(self, db: AsyncSession, phone: str) -> Employee:
        employee = await self._load(db, phone)
        await self.derive_and_store(db, employee.phone, employee.name)
        logger.info("Regenerated code for employee %s", employee.phone)
        return employee

    # ── Lifecycle ───────────────────────────────────────────────────
    async def create_employee(
        self,
        db: AsyncSession,
        *,
        phone: str,
        name: str,
        department: str | None = None,
        employee_number: str | None = None,
        email: str | None = None,
    ) -> Employee:
        phone = phone.strip()
        name = name.strip()
        code = self.deriver.derive(phone, name)

        async with storage_errors("employee create"):
            if await db.get(Employee, phone) is not None:
                raise ConflictError(f"Phone '{phone}' already registered")

            employee = Employee(
                phone=phone,
                name=name,
                department=department,
                employee_number=employee_number,
                email=email,
                code=code,
                is_active=True,
            )
            db.add(employee)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError(
                    f"Phone '{phone}' or its derived code is already registered"
                ) from exc

        logger.info("Created employee %s (%s)", employee.phone, employee.name)
        return employee

    async def update_employee(self, db: AsyncSession, phone: str, changes: dict[str, Any]) -> Employee:
        """Apply roster edits; a changed display name regenerates the code.

        The edit and the new code are committed together.
        """
        employee = await self._load(db, phone)
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            setattr(employee, field, value.strip() if isinstance(value, str) else value)

        if "name" in changes:
            # Also on a pure typo fix: previously printed codes stop working.
            await self.derive_and_store(db, employee.phone, employee.name)
        else:
            async with storage_errors("employee update"):
                await db.commit()

        logger.info("Updated employee %s: %s", employee.phone, sorted(changes))
        return employee

    async def _set_active(self, db: AsyncSession, phone: str, active: bool) -> Employee:
        employee = await self._load(db, phone)
        employee.is_active = active
        async with storage_errors("employee activation"):
            await db.commit()
        return employee

    async def deactivate(self, db: AsyncSession, phone: str) -> Employee:
        """Soft delete. Attendance history and the current code are kept."""
        employee = await self._set_active(db, phone, False)
        logger.info("Deactivated employee %s", employee.phone)
        return employee

    async def reactivate(self, db: AsyncSession, phone: str) -> Employee:
        employee = await self._set_active(db, phone, True)
        logger.info("Reactivated employee %s", employee.phone)
        return employee

    # ── Queries ─────────────────────────────────────────────────────
    async def get_employee(self, db: AsyncSession, phone: str) -> Employee:
        return await self._load(db, phone)

    async def list_employees(
        self,
        db: AsyncSession,
        *,
        search: str | None = None,
        department: str | None = None,
        is_active: bool | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Employee]:
        query = select(Employee)
        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.where(
                or_(
                    Employee.name.ilike(pattern, escape="\\"),
                    Employee.phone.ilike(pattern, escape="\\"),
                )
            )
        if department:
            query = query.where(Employee.department == department)
        if is_active is not None:
            query = query.where(Employee.is_active.is_(is_active))

        query = query.order_by(Employee.created_at.desc(), Employee.phone).offset(skip).limit(limit)
        async with storage_errors("employee list"):
            result = await db.execute(query)
        return list(result.scalars().all())

    async def list_departments(self, db: AsyncSession) -> list[str]:
        async with storage_errors("department list"):
            result = await db.execute(
                select(Employee.department)
                .where(Employee.is_active.is_(True), Employee.department.is_not(None))
                .distinct()
            )
        return sorted(d for d in result.scalars().all() if d)
