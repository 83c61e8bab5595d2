"""
Shared test fixtures for the Punchclock test suite.

Async throughout (aiosqlite + AsyncSession).  Every API test gets a fresh
in-memory database; the auth guards are overridden so requests run as a
seeded administrator unless a test switches to ``employee_client``.
"""

import os
import sys
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
# Use async sqlite driver
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REPORTING_TIMEZONE"] = "UTC"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from punchclock.api.v1.deps import get_current_active_user, get_db, require_admin
from punchclock.core.ledger import PunchKind
from punchclock.db.base import Base
from punchclock.main import app
from punchclock.models.punch import PunchRecord
from punchclock.models.user import User

ADMIN = {
    "id": 1,
    "email": "admin@example.com",
    "full_name": "Test Admin",
    "role": "admin",
    "is_active": True,
    "employee_code": "EMP0001",
    "qr_code": "PUNCH-ADMIN0000001",
}
EMPLOYEE = {
    "id": 2,
    "email": "worker@example.com",
    "full_name": "Test Worker",
    "role": "employee",
    "is_active": True,
    "employee_code": "EMP0002",
    "qr_code": "PUNCH-WORKER000002",
}


# ── Database ────────────────────────────────────────────────────────
@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with the admin and one employee seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        session.add(User(**ADMIN, hashed_password="not-a-real-hash"))
        session.add(User(**EMPLOYEE, hashed_password="not-a-real-hash"))
        await session.commit()

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Auth Overrides ──────────────────────────────────────────────────
async def _override_get_current_active_user():
    return User(**ADMIN)


async def _override_require_admin():
    return User(**ADMIN)


app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
app.dependency_overrides[require_admin] = _override_require_admin


# ── Clients ─────────────────────────────────────────────────────────
@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app, acting as the admin."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def employee_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Same app, but requests run as a plain employee (real admin guard)."""

    async def _as_employee():
        return User(**EMPLOYEE)

    app.dependency_overrides[get_current_active_user] = _as_employee
    app.dependency_overrides.pop(require_admin, None)
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
        app.dependency_overrides[require_admin] = _override_require_admin


# ── Ledger helpers ──────────────────────────────────────────────────
def at(hhmm: str, day: str = "2024-03-04") -> datetime:
    """UTC timestamp on ``day`` (a Monday by default)."""
    return datetime.fromisoformat(f"{day}T{hhmm}:00").replace(tzinfo=timezone.utc)


async def add_punches(session: AsyncSession, user_id: int, *punches: tuple[str, datetime]) -> None:
    """Insert ledger rows directly, bypassing the punch endpoint."""
    for kind, ts in punches:
        session.add(
            PunchRecord(
                user_id=user_id,
                kind=PunchKind(kind).value,
                timestamp=ts,
                date=ts.date().isoformat(),
                method="manual",
            )
        )
    await session.commit()
