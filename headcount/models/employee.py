"""
Employee model: roster entry and current attendance code.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from headcount.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    # Natural key (phone number), immutable once created
    phone: str = Column(String(30), primary_key=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True, index=True)  # type: ignore[assignment]
    employee_number: str | None = Column(String(50), nullable=True, index=True)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    # Current code; the unique index is what makes a replaced code unresolvable
    code: str = Column(String(64), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    is_active: bool = Column(  # type: ignore[assignment]
        Boolean, nullable=False, default=True, server_default="true", index=True
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # No cascade: ledger rows outlive any roster change
    attendance_records = relationship(
        "AttendanceRecord",
        back_populates="employee",
        passive_deletes="all",
    )
