"""
Scan Validator: turns a submitted code into one attendance outcome.

Decision order, each step short-circuiting:

1. resolve the code                       → ``invalid`` (no name revealed)
2. verify the code against the employee   → ``invalid`` (no name revealed)
3. employee inactive                      → ``inactive``
4. atomic success commit                  → ``success`` or ``duplicate``

A stored code that fails verification is ``invalid`` even for an inactive
employee: verification takes precedence over the activation check.

The validator keeps no state of its own. All shared state lives in the
database, so any number of concurrent callers (threads, tasks, processes)
may submit at once, each with its own session. Storage failures surface as
:class:`~headcount.core.exceptions.TransientError`; nothing is retried here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from headcount.core.codes import CodeDeriver
from headcount.core.enums import ScanStatus
from headcount.core.exceptions import TransientError
from headcount.repositories.attendance_ledger import (AttendanceLedger,
                                                      CommitResult,
                                                      calendar_day)
from headcount.repositories.code_store import CodeStore

logger = logging.getLogger(__name__)

MSG_UNRECOGNIZED = "Unrecognized code"
MSG_VERIFICATION_FAILED = "Code verification failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScanOutcome:
    status: ScanStatus
    message: str
    employee_name: str | None = None
    timestamp: datetime | None = None

    @property
    def success(self) -> bool:
        return self.status is ScanStatus.SUCCESS


class ScanValidator:
    def __init__(
        self,
        code_store: CodeStore,
        ledger: AttendanceLedger,
        deriver: CodeDeriver,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.code_store = code_store
        self.ledger = ledger
        self.deriver = deriver
        self.clock = clock

    async def submit(
        self,
        db: AsyncSession,
        code: str,
        device_id: str,
        now: datetime | None = None,
    ) -> ScanOutcome:
        """Validate one scan and record it in the ledger.

        When *now* is omitted the clock is read right before each ledger
        write, so a scan straddling midnight lands on the day of the write.
        """
        code = code.strip()
        employee = await self.code_store.resolve(db, code) if code else None

        if employee is None:
            ts = now or self.clock()
            await self.ledger.record_non_success(
                db, None, device_id, ts, ScanStatus.INVALID, MSG_UNRECOGNIZED
            )
            logger.info("Scan invalid from %s: unrecognized code", device_id)
            return ScanOutcome(ScanStatus.INVALID, MSG_UNRECOGNIZED, timestamp=ts)

        if not self.deriver.verify(code, employee.phone, employee.name):
            ts = now or self.clock()
            await self.ledger.record_non_success(
                db, employee.phone, device_id, ts, ScanStatus.INVALID, MSG_VERIFICATION_FAILED
            )
            logger.warning(
                "Scan invalid from %s: stored code for %s fails verification",
                device_id,
                employee.phone,
            )
            return ScanOutcome(ScanStatus.INVALID, MSG_VERIFICATION_FAILED, timestamp=ts)

        if not employee.is_active:
            ts = now or self.clock()
            message = f"{employee.name} is inactive"
            await self.ledger.record_non_success(
                db, employee.phone, device_id, ts, ScanStatus.INACTIVE, message
            )
            logger.info("Scan inactive from %s for %s", device_id, employee.phone)
            return ScanOutcome(ScanStatus.INACTIVE, message, employee.name, ts)

        ts = now or self.clock()
        result = await self.ledger.try_commit_success(db, employee.phone, device_id, ts)
        if result is CommitResult.COMMITTED:
            logger.info("Scan success from %s for %s", device_id, employee.phone)
            return ScanOutcome(ScanStatus.SUCCESS, f"Welcome, {employee.name}!", employee.name, ts)

        try:
            earlier = await self.ledger.first_success_on(
                db, employee.phone, calendar_day(ts, self.ledger.tz)
            )
        except TransientError:
            # Only the message needs it; the duplicate is already decided
            logger.warning("Earlier success time unavailable for %s", employee.phone)
            earlier = None
        message = f"{employee.name} already scanned today"
        if earlier is not None:
            local = earlier.astimezone(self.ledger.tz)
            message = f"{message} at {local:%H:%M}"
        await self.ledger.record_non_success(
            db, employee.phone, device_id, ts, ScanStatus.DUPLICATE, message
        )
        logger.info("Scan duplicate from %s for %s", device_id, employee.phone)
        return ScanOutcome(ScanStatus.DUPLICATE, message, employee.name, ts)
