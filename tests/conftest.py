"""
Shared test fixtures for the Workforce HR test suite.

Uses an in-memory aiosqlite database, a frozen clock and real JWTs for a
small seeded org chart.
"""

import os
from datetime import datetime
from typing import AsyncGenerator

import pytest

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-entropy-for-hs256-signing"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from workforce.api.v1.deps import get_clock, get_db
from workforce.core.security import create_access_token
from workforce.db.base import Base
from workforce.main import app
from workforce.models.user import User

# Monday 10 March 2025, before the 09:00 start
DEFAULT_NOW = datetime(2025, 3, 10, 8, 55)

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class FrozenClock:
    """Callable clock whose time the test moves explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, second: int = 0) -> None:
        self.now = self.now.replace(hour=hour, minute=minute, second=second)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture(autouse=True)
def clock():
    frozen = FrozenClock(DEFAULT_NOW)
    app.dependency_overrides[get_clock] = lambda: frozen
    yield frozen
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


# ── Org chart ───────────────────────────────────────────────────────
@pytest.fixture
async def org(db_session: AsyncSession) -> dict[str, User]:
    """director ← hr; director ← lead ← (alice, bob); carol has no manager; ivan the intern under lead."""
    director = User(email="dora@corp.test", full_name="Dora Director", role="DIRECTOR", requires_time_tracking=False)
    db_session.add(director)
    await db_session.flush()

    hr = User(email="hank@corp.test", full_name="Hank HR", role="HR", manager_id=director.id)
    lead = User(email="lea@corp.test", full_name="Lea Lead", role="TEAM_LEADER", manager_id=director.id)
    other_lead = User(email="otto@corp.test", full_name="Otto Lead", role="TEAM_LEADER", manager_id=director.id)
    db_session.add_all([hr, lead, other_lead])
    await db_session.flush()

    alice = User(email="alice@corp.test", full_name="Alice", role="EMPLOYEE", manager_id=lead.id, employee_code="E-001")
    bob = User(email="bob@corp.test", full_name="Bob", role="EMPLOYEE", manager_id=lead.id, employee_code="E-002")
    carol = User(email="carol@corp.test", full_name="Carol", role="EMPLOYEE", employee_code="E-003")
    ivan = User(email="ivan@corp.test", full_name="Ivan", role="INTERN", manager_id=lead.id)
    db_session.add_all([alice, bob, carol, ivan])
    await db_session.commit()

    return {
        "director": director,
        "hr": hr,
        "lead": lead,
        "other_lead": other_lead,
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "ivan": ivan,
    }


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
