"""
FastAPI dependencies: database session, operator auth guards and the
process-wide service objects.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from headcount.core.codes import get_code_deriver
from headcount.core.config import get_attendance_timezone, settings
from headcount.core.enums import OperatorRole
from headcount.core.security import decode_access_token
from headcount.db.session import async_session_factory
from headcount.models.user import User
from headcount.repositories.attendance_ledger import AttendanceLedger
from headcount.repositories.code_store import CodeStore
from headcount.services.roster import RosterService
from headcount.services.scan_validator import ScanValidator

# auto_error=False so we can fall back to the cookie if the header is missing
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Services (stateless, shared) ────────────────────────────────────
@lru_cache
def get_ledger() -> AttendanceLedger:
    return AttendanceLedger(get_attendance_timezone())


@lru_cache
def get_scan_validator() -> ScanValidator:
    return ScanValidator(CodeStore(), get_ledger(), get_code_deriver())


@lru_cache
def get_roster() -> RosterService:
    return RosterService(CodeStore(), get_code_deriver())


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # HttpOnly cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up the operator."""

    # Priority: Header > Cookie ("Bearer <token>" or bare token)
    final_token = token
    if not final_token and access_token:
        final_token = access_token.removeprefix("Bearer ").strip()

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None or not user_id.isdigit():
        raise credentials_exc

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject inactive operator accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive operator account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow the admin role to proceed."""
    if current_user.role != OperatorRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user
