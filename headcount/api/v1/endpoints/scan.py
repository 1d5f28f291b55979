"""
Scan endpoint: the device-facing entry point of the validator.

Any active operator account may scan. Policy outcomes (success, duplicate,
invalid, inactive) are all 200 responses; only a storage outage is an error
(503, see ``core.exceptions``).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.api.v1.deps import get_current_active_user, get_db, get_scan_validator
from headcount.models.user import User
from headcount.schemas.attendance import ScanRequest, ScanResponse
from headcount.services.scan_validator import ScanValidator

router = APIRouter(tags=["scan"])


@router.post("/scan", response_model=ScanResponse)
async def scan_code(
    body: ScanRequest,
    db: AsyncSession = Depends(get_db),
    operator: User = Depends(get_current_active_user),
    validator: ScanValidator = Depends(get_scan_validator),
) -> ScanResponse:
    """Record one scanned code for the authenticated device."""
    outcome = await validator.submit(db, body.code, device_id=operator.username)
    return ScanResponse(
        success=outcome.success,
        status=outcome.status,
        message=outcome.message,
        employee_name=outcome.employee_name,
        timestamp=outcome.timestamp,
    )
