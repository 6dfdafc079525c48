"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh database: an in-memory SQLite database by default, or
the database named by TEST_DATABASE_URL (tables created and dropped per test).
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, time, timezone, timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from eventbook.main import app
from eventbook.db.base import Base
from eventbook.db.session import get_db
from eventbook.core.security import create_access_token, hash_password
from eventbook.models.user import User
from eventbook.models.event import Event

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so the in-memory database survives across sessions
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {}


def event_fields(starts_at: datetime, **overrides) -> dict:
    """Column values for an event starting at `starts_at` (UTC)."""
    fields = {
        "title": "Test Concert",
        "description": "A test event",
        "date": starts_at.date(),
        "start_time": starts_at.time().replace(microsecond=0),
        "end_time": (starts_at + timedelta(hours=2)).time().replace(microsecond=0),
        "venue": "Test Venue",
        "contact_email": "events@example.com",
        "available_slots": 100,
    }
    fields.update(overrides)
    return fields


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs(TEST_DATABASE_URL))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, username: str) -> User:
    user = User(
        email=email,
        username=username,
        emp_id="INT001",
        designation="Engineer",
        hashed_password=hash_password("testpassword123"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "test@example.com", "testuser")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", "otheruser")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    token = create_access_token(data={"sub": str(test_user.id), "email": test_user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    token = create_access_token(data={"sub": str(other_user.id), "email": other_user.email})
    return {"Authorization": f"Bearer {token}"}


async def _create_event(db_session: AsyncSession, organizer: User, **fields) -> Event:
    event = Event(organizer_id=organizer.id, **fields)
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, test_user: User) -> Event:
    """An event 30 days out with 100 open slots."""
    starts_at = datetime.combine(
        datetime.now(timezone.utc).date() + timedelta(days=30), time(10, 0), tzinfo=timezone.utc
    )
    return await _create_event(db_session, test_user, **event_fields(starts_at))


@pytest_asyncio.fixture
async def last_slot_event(db_session: AsyncSession, test_user: User) -> Event:
    """An event 30 days out with exactly one slot left."""
    starts_at = datetime.combine(
        datetime.now(timezone.utc).date() + timedelta(days=30), time(18, 0), tzinfo=timezone.utc
    )
    return await _create_event(
        db_session,
        test_user,
        **event_fields(starts_at, title="Last Seat Show", available_slots=2, slots_booked=1),
    )


@pytest_asyncio.fixture
async def sold_out_event(db_session: AsyncSession, test_user: User) -> Event:
    starts_at = datetime.combine(
        datetime.now(timezone.utc).date() + timedelta(days=30), time(20, 0), tzinfo=timezone.utc
    )
    return await _create_event(
        db_session,
        test_user,
        **event_fields(starts_at, title="Sold Out Show", available_slots=50, slots_booked=50),
    )


@pytest_asyncio.fixture
async def imminent_event(db_session: AsyncSession, test_user: User) -> Event:
    """An event starting in two hours: inside the cancellation window."""
    starts_at = datetime.now(timezone.utc) + timedelta(hours=2)
    return await _create_event(db_session, test_user, **event_fields(starts_at, title="Starting Soon"))
