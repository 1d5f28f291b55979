"""
Code Store: employee ↔ current code mapping.

Global uniqueness of codes is enforced by the unique index on
``employees.code``; :meth:`CodeStore.put` detects a collision from the
``IntegrityError`` raised at commit, never from a prior read.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.core.exceptions import ConflictError, EmployeeNotFoundError
from headcount.models.employee import Employee
from headcount.repositories.base import storage_errors


@dataclass(frozen=True)
class EmployeeRecord:
    """Detached snapshot of an employee, safe to use after a rollback."""

    phone: str
    name: str
    department: str | None
    is_active: bool
    code: str

    @classmethod
    def from_model(cls, employee: Employee) -> "EmployeeRecord":
        return cls(
            phone=employee.phone,
            name=employee.name,
            department=employee.department,
            is_active=bool(employee.is_active),
            code=employee.code,
        )


class CodeStore:
    async def resolve(self, db: AsyncSession, code: str) -> EmployeeRecord | None:
        """Look up the employee currently holding *code* (indexed, single query)."""
        async with storage_errors("code lookup"):
            result = await db.execute(select(Employee).where(Employee.code == code))
            employee = result.scalar_one_or_none()
        return EmployeeRecord.from_model(employee) if employee is not None else None

    async def get(self, db: AsyncSession, phone: str) -> EmployeeRecord | None:
        async with storage_errors("employee lookup"):
            employee = await db.get(Employee, phone)
        return EmployeeRecord.from_model(employee) if employee is not None else None

    async def put(self, db: AsyncSession, phone: str, code: str) -> None:
        """Make *code* the employee's only valid code and commit.

        Any other pending changes in the session (e.g. the rename that
        triggered the regeneration) are committed in the same transaction,
        so the old code stops resolving exactly when the new one starts.
        """
        async with storage_errors("code store write"):
            employee = await db.get(Employee, phone)
            if employee is None:
                raise EmployeeNotFoundError(f"Employee '{phone}' not found")

            employee.code = code
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("Code is already assigned to another employee") from exc
