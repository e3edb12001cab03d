"""
Test configuration and fixtures for the Chatline test suite.

Environment defaults are set before any chatline import: configuration and
the Argon2 cost parameters are read at import time.
"""

import os

os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_FILE_LOGGING", "false")
os.environ.setdefault("LOGGING_LEVEL", "WARNING")
# Outbound email stays disabled unless a test configures it
os.environ.pop("EMAIL_RESEND_API_KEY", None)
os.environ.pop("RESEND_API_KEY", None)
# Cheap hashes keep the suite fast; production defaults are tested against the constants
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chatline.auth.token_service import Identity, TokenService  # noqa: E402
from chatline.config import reset_config  # noqa: E402
from chatline.database import DatabaseManager  # noqa: E402
from chatline.models import Base  # noqa: E402
from chatline.realtime.connection_auth import ConnectionAuthenticator  # noqa: E402
from chatline.realtime.gateway import RealtimeGateway  # noqa: E402
from chatline.realtime.presence_registry import PresenceRegistry  # noqa: E402
from chatline.realtime.rate_limiter import EventRateLimiter  # noqa: E402
from chatline.tests.fixtures.fake_websocket import FakeClock  # noqa: E402

TEST_SECRET = os.environ["AUTH_JWT_SECRET"]


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset config and database singletons around each test."""
    reset_config()
    DatabaseManager.reset_instance()
    yield
    reset_config()
    DatabaseManager.reset_instance()


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET, default_lifetime=timedelta(hours=1))


@pytest.fixture
def alice() -> Identity:
    return Identity(id="11111111-1111-4111-8111-111111111111", email="alice@example.com")


@pytest.fixture
def bob() -> Identity:
    return Identity(id="22222222-2222-4222-8222-222222222222", email="bob@example.com")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway(token_service: TokenService, clock: FakeClock) -> RealtimeGateway:
    """Gateway with the default 10 events / 60 s limit and a controllable clock."""
    return RealtimeGateway(
        ConnectionAuthenticator(token_service),
        PresenceRegistry(),
        EventRateLimiter(capacity=10, window_seconds=60.0, clock=clock),
    )


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a fresh in-memory SQLite database with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """TestClient on a fresh application; the lifespan creates an in-memory database."""
    from chatline.app.factory import create_app

    with TestClient(create_app()) as test_client:
        yield test_client
