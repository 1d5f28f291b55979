"""
Shared test fixtures for the Headcount test suite.

Every test gets its own file-backed SQLite database (aiosqlite) so that
concurrent sessions use genuinely separate connections and the unique
indexes do the arbitration, exactly as they do on PostgreSQL.
"""

import os
import sys
from collections.abc import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
TEST_TIMEZONE = "Asia/Jakarta"  # UTC+7, no DST

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["CODE_SECRET"] = TEST_SECRET
os.environ["ATTENDANCE_TIMEZONE"] = TEST_TIMEZONE
os.environ["SECRET_KEY"] = "jwt-test-key-" + "x" * 40

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from headcount.api.v1.deps import get_current_active_user, get_db, require_admin
from headcount.api.v1.endpoints.auth import limiter
from headcount.core.codes import CodeDeriver
from headcount.db.base import Base
from headcount.main import app
from headcount.models.user import User
from headcount.repositories.attendance_ledger import AttendanceLedger
from headcount.repositories.code_store import CodeStore
from headcount.services.roster import RosterService
from headcount.services.scan_validator import ScanValidator

# Login tests run many times per minute
limiter.enabled = False

TZ = ZoneInfo(TEST_TIMEZONE)


# ── Database ────────────────────────────────────────────────────────
@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh database per test; tables created up front and dropped after."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'headcount.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Core objects ────────────────────────────────────────────────────
@pytest.fixture
def deriver() -> CodeDeriver:
    return CodeDeriver(TEST_SECRET)


@pytest.fixture
def code_store() -> CodeStore:
    return CodeStore()


@pytest.fixture
def ledger() -> AttendanceLedger:
    return AttendanceLedger(TZ)


@pytest.fixture
def validator(code_store, ledger, deriver) -> ScanValidator:
    return ScanValidator(code_store, ledger, deriver)


@pytest.fixture
def roster(code_store, deriver) -> RosterService:
    return RosterService(code_store, deriver)


# ── HTTP client ─────────────────────────────────────────────────────
def _operator(role: str = "admin", username: str = "kiosk-test") -> User:
    return User(id=1, username=username, is_active=True, role=role)


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the app, authenticated as an admin operator."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _override_active_user() -> User:
        return _operator()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_active_user] = _override_active_user
    app.dependency_overrides[require_admin] = _override_active_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def as_scanner(async_client):
    """Switch the client's operator to a non-admin scanner account."""

    async def _scanner() -> User:
        return _operator(role="scanner", username="gate-scanner")

    app.dependency_overrides[get_current_active_user] = _scanner
    app.dependency_overrides.pop(require_admin, None)
    return async_client


@pytest.fixture
def unauthenticated(async_client):
    """Drop the auth overrides so real token checks apply."""
    app.dependency_overrides.pop(get_current_active_user, None)
    app.dependency_overrides.pop(require_admin, None)
    return async_client
