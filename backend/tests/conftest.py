"""
Pytest fixtures for test database, client, and authentication.

Tests run against a throwaway SQLite file (override with TEST_DATABASE_URL).
Tables are created and dropped around every test for isolation. A file
rather than :memory: so that several sessions can race on the same rows.
"""

import os
import tempfile
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

_DEFAULT_TEST_DB = os.path.join(tempfile.gettempdir(), f"eventhub_test_{os.getpid()}.db")
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_DEFAULT_TEST_DB}")

# Settings are read once at import time, so configure before importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_ENABLED"] = "false"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from eventhub.main import app  # noqa: E402
from eventhub.db.base import Base  # noqa: E402
from eventhub.db.session import get_db, engine_options  # noqa: E402
from eventhub.core.security import create_access_token, hash_password  # noqa: E402
from eventhub.models.user import User, UserRole  # noqa: E402
from eventhub.models.event import Event, EventStatus  # noqa: E402

# NullPool: every session gets its own connection, so concurrent sessions really race
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args=engine_options(TEST_DATABASE_URL).get("connect_args", {}),
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

PASSWORD = "testpassword123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Independent sessions, one per simulated concurrent request."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    db: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    name: str = "Test User",
) -> User:
    user = User(
        name=name,
        email=email,
        phone="+15550100",
        role=role.value,
        hashed_password=hash_password(PASSWORD),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_event(
    db: AsyncSession,
    organizer: User,
    title: str = "Test Concert Night",
    total_seats: int = 10,
    price: str = "100.00",
    status: EventStatus = EventStatus.APPROVED,
) -> Event:
    event = Event(
        title=title,
        slug=title.lower().replace(" ", "-"),
        description="A test event with enough description text.",
        category="music",
        event_date=datetime.now(timezone.utc) + timedelta(days=30),
        event_time="19:30",
        venue="Test Venue",
        address="1 Main Street",
        city="Springfield",
        country="US",
        total_seats=total_seats,
        available_seats=total_seats,
        booked_seats=0,
        price=Decimal(price),
        organizer_id=organizer.id,
        status=status.value,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


def headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "test@example.com", name="Test User")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com", name="Other User")


@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "organizer@example.com", UserRole.ORGANIZER, "Olive Organizer")


@pytest_asyncio.fixture
async def other_organizer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "rival@example.com", UserRole.ORGANIZER, "Rival Organizer")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@example.com", UserRole.ADMIN, "Ada Admin")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def organizer_headers(organizer: User) -> dict:
    return headers_for(organizer)


@pytest_asyncio.fixture
async def admin_headers(admin: User) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, organizer: User) -> Event:
    """Approved event with 10 seats at 100.00."""
    return await create_event(db_session, organizer)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, organizer: User) -> Event:
    """Approved event with 5 seats at 50.00."""
    return await create_event(db_session, organizer, title="Small Venue Show", total_seats=5, price="50.00")


@pytest_asyncio.fixture
async def pending_event(db_session: AsyncSession, organizer: User) -> Event:
    return await create_event(
        db_session, organizer, title="Pending Jazz Evening", status=EventStatus.PENDING,
    )


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    async def _make(email: str, role: UserRole = UserRole.USER, name: str = "Test User") -> User:
        return await create_user(db_session, email, role, name)
    return _make


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession):
    async def _make(organizer: User, **kwargs) -> Event:
        return await create_event(db_session, organizer, **kwargs)
    return _make


@pytest.fixture
def make_headers():
    return headers_for
