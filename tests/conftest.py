"""Test fixtures for the Obituary Opt-Out Service test suite."""

import os
from collections.abc import AsyncGenerator
from datetime import date
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables BEFORE importing app modules
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "RATE_LIMIT_BACKEND": "memory",
    "AWS_ACCESS_KEY_ID": "test-key-id",
    "AWS_SECRET_ACCESS_KEY": "test-secret-key",
    "AWS_REGION": "us-east-1",
    "NOTIFY_FROM_EMAIL": "no-reply@test.example.com",
    "ADMIN_EMAIL": "admin@test.example.com",
    "APP_BASE_URL": "http://localhost:8000",
    "AUTH_USERNAME": "operator",
    "AUTH_PASSWORD": "test-password",
    "ENVIRONMENT": "test",
    "LOG_LEVEL": "WARNING",
})

from optout.database import Base, get_session  # noqa: E402
from optout.main import create_app  # noqa: E402
from optout.models.obituary import Obituary  # noqa: E402
from optout.services.rate_limiter import (  # noqa: E402
    MemoryRateLimitStore,
    set_rate_limit_store,
)
from optout.utils.fingerprint import compute_fingerprint  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    """Database session. Services may commit; the database is discarded after the test."""
    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def rate_store():
    """Isolated in-process rate limit counters."""
    store = MemoryRateLimitStore()
    set_rate_limit_store(store)
    yield store
    set_rate_limit_store(None)


@pytest.fixture(autouse=True)
def mock_notifier():
    """Replace the SES notifier so no test reaches AWS."""
    with patch("optout.services.notification_service.notifier") as mock:
        mock.send = AsyncMock(return_value="test-ses-message-id")
        yield mock


@pytest.fixture
def make_obituary(db: AsyncSession):
    """Factory for committed obituary rows."""

    async def _make(
        name: str | None = None,
        date_of_death: date | None = date(2024, 3, 2),
        fingerprint: str | None = None,
    ) -> Obituary:
        name = name or f"Jane Doe {uuid4().hex[:6]}"
        obituary = Obituary(
            id=uuid4(),
            name=name,
            date_of_death=date_of_death,
            content_fingerprint=(
                fingerprint
                if fingerprint is not None
                else compute_fingerprint(name, date_of_death, "Smith Funeral Home", "Toronto")
            ),
        )
        db.add(obituary)
        await db.commit()
        return obituary

    return _make


@pytest.fixture
async def obituary(make_obituary) -> Obituary:
    return await make_obituary()


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with database session override."""
    app = create_app()

    async def override_get_session():
        yield db

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sample_request_data():
    """Sample public removal request fields."""
    return {
        "name": "Mary Doe",
        "email": "mary.doe@example.com",
        "relationship": "Daughter",
        "notes": "Please remove my mother's listing.",
    }
