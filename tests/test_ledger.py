"""Tests for the append-only attendance ledger."""

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from headcount.core.enums import ScanStatus
from headcount.core.exceptions import TransientError
from headcount.models.attendance import AttendanceRecord
from headcount.models.employee import Employee
from headcount.repositories.attendance_ledger import (CommitResult,
                                                      calendar_day)

TZ = ZoneInfo("Asia/Jakarta")


@pytest.fixture
async def employee(db_session):
    db_session.add(Employee(phone="555-0100", name="Ava Lee", code="a" * 64))
    await db_session.commit()
    return "555-0100"


def _local(y, m, d, hh, mm=0):
    return datetime(y, m, d, hh, mm, tzinfo=TZ)


async def _count(db, **filters):
    query = select(func.count(AttendanceRecord.id))
    for column, value in filters.items():
        query = query.where(getattr(AttendanceRecord, column) == value)
    return await db.scalar(query)


def test_calendar_day_uses_configured_zone():
    # 20:00 UTC on the 1st is 03:00 on the 2nd in UTC+7
    assert calendar_day(datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc), TZ) == date(2026, 3, 2)
    # Naive timestamps are taken as UTC
    assert calendar_day(datetime(2026, 3, 1, 16, 59), TZ) == date(2026, 3, 1)
    assert calendar_day(datetime(2026, 3, 1, 17, 0), TZ) == date(2026, 3, 2)


@pytest.mark.asyncio
async def test_second_success_same_day_already_exists(db_session, ledger, employee):
    first = await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9))
    second = await ledger.try_commit_success(db_session, employee, "device-2", _local(2026, 3, 2, 17))
    assert first is CommitResult.COMMITTED
    assert second is CommitResult.ALREADY_EXISTS
    assert await _count(db_session, status="success") == 1


@pytest.mark.asyncio
async def test_success_next_day_commits(db_session, ledger, employee):
    await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9))
    result = await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 3, 9))
    assert result is CommitResult.COMMITTED


@pytest.mark.asyncio
async def test_concurrent_commits_exactly_one_wins(session_factory, ledger, employee):
    async def attempt(i):
        async with session_factory() as db:
            return await ledger.try_commit_success(
                db, employee, f"device-{i}", _local(2026, 3, 2, 9, i % 60)
            )

    results = await asyncio.gather(*(attempt(i) for i in range(20)))
    assert results.count(CommitResult.COMMITTED) == 1
    assert results.count(CommitResult.ALREADY_EXISTS) == 19


@pytest.mark.asyncio
async def test_non_success_rows_are_unconstrained(db_session, ledger, employee):
    ts = _local(2026, 3, 2, 9)
    for _ in range(3):
        await ledger.record_non_success(
            db_session, employee, "device-1", ts, ScanStatus.DUPLICATE, "again"
        )
    await ledger.record_non_success(db_session, None, "device-1", ts, ScanStatus.INVALID, "?")
    assert await _count(db_session, status="duplicate") == 3
    assert await _count(db_session, status="invalid") == 1


@pytest.mark.asyncio
async def test_record_non_success_refuses_success(db_session, ledger, employee):
    with pytest.raises(ValueError):
        await ledger.record_non_success(
            db_session, employee, "device-1", _local(2026, 3, 2, 9), ScanStatus.SUCCESS
        )


@pytest.mark.asyncio
async def test_has_succeeded_on_and_first_success(db_session, ledger, employee):
    day = date(2026, 3, 2)
    assert await ledger.has_succeeded_on(db_session, employee, day) is False

    ts = _local(2026, 3, 2, 8, 30)
    await ledger.try_commit_success(db_session, employee, "device-1", ts)
    assert await ledger.has_succeeded_on(db_session, employee, day) is True
    assert await ledger.first_success_on(db_session, employee, day) == ts.astimezone(timezone.utc)
    assert await ledger.has_succeeded_on(db_session, employee, date(2026, 3, 3)) is False


@pytest.mark.asyncio
async def test_list_records_filters_and_total(db_session, ledger, employee):
    await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9))
    await ledger.record_non_success(
        db_session, employee, "device-2", _local(2026, 3, 2, 9, 5), ScanStatus.DUPLICATE, "dup"
    )
    await ledger.record_non_success(
        db_session, None, "device-2", _local(2026, 3, 3, 9), ScanStatus.INVALID, "?"
    )

    rows, total = await ledger.list_records(db_session)
    assert total == 3
    assert rows[0][0].status == "invalid"  # newest first

    rows, total = await ledger.list_records(db_session, device_id="device-2")
    assert total == 2

    rows, total = await ledger.list_records(
        db_session, date_from=date(2026, 3, 2), date_to=date(2026, 3, 2)
    )
    assert total == 2
    assert {name for _record, name in rows} == {"Ava Lee"}

    rows, total = await ledger.list_records(db_session, status=ScanStatus.SUCCESS)
    assert total == 1

    rows, total = await ledger.list_records(db_session, skip=1, limit=1)
    assert total == 3 and len(rows) == 1


@pytest.mark.asyncio
async def test_daily_report_counts_by_status(db_session, ledger, employee):
    await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9))
    await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9, 1))
    await ledger.record_non_success(
        db_session, employee, "device-1", _local(2026, 3, 2, 9, 1), ScanStatus.DUPLICATE, "dup"
    )
    report = await ledger.daily_report(db_session, date(2026, 3, 2))
    assert report.total_scans == 2
    assert report.count(ScanStatus.SUCCESS) == 1
    assert report.count(ScanStatus.DUPLICATE) == 1
    assert report.count(ScanStatus.INVALID) == 0


@pytest.mark.asyncio
async def test_store_outage_is_transient(ledger):
    db = MagicMock()
    db.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("down")))
    with pytest.raises(TransientError):
        await ledger.try_commit_success(db, "555-0100", "device-1", _local(2026, 3, 2, 9))


@pytest.mark.asyncio
async def test_other_integrity_errors_are_not_duplicates(db_session, ledger, employee):
    # NOT NULL on device_id, not the once-per-day index
    with pytest.raises(IntegrityError):
        await ledger.try_commit_success(db_session, employee, None, _local(2026, 3, 2, 9))

    result = await ledger.try_commit_success(db_session, employee, "device-1", _local(2026, 3, 2, 9))
    assert result is CommitResult.COMMITTED


def _failing_commit(message):
    db = MagicMock()
    db.commit = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception(message)))
    db.rollback = AsyncMock()
    return db


@pytest.mark.asyncio
async def test_foreign_key_violation_is_raised(ledger):
    db = _failing_commit(
        'insert or update on table "attendance_records" violates foreign key '
        'constraint "attendance_records_employee_phone_fkey"'
    )
    with pytest.raises(IntegrityError):
        await ledger.try_commit_success(db, "555-0999", "device-1", _local(2026, 3, 2, 9))
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_named_daily_index_violation_is_already_exists(ledger):
    db = _failing_commit(
        'duplicate key value violates unique constraint "uq_attendance_success_per_day"'
    )
    result = await ledger.try_commit_success(db, "555-0100", "device-1", _local(2026, 3, 2, 9))
    assert result is CommitResult.ALREADY_EXISTS
