"""Pytest configuration and fixtures for SalesDesk tests.

Provides an in-memory database per test, an HTTP client wired to it, and
token helpers for each role.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from salesdesk.auth.jwt import create_access_token
from salesdesk.database import Base, get_db
from salesdesk.main import app
from salesdesk.models import *  # noqa: F401,F403 (register every table on Base)
from salesdesk.tenancy import SessionContext

OWNER_A = "owner-aaa111"
OWNER_B = "owner-bbb222"
CUSTOMER = "Acme Ltd"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory SQLite database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests all run on `db_session`."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Sessions & tokens ────────────────────────────────────────────

def make_token(
    role: str = "admin",
    owner_id: str = OWNER_A,
    user_id: str = "user-1",
    customer_ref: str | None = None,
) -> str:
    return create_access_token(
        user_id=user_id, role=role, owner_id=owner_id, customer_ref=customer_ref,
    )


def headers_for(role: str = "admin", owner_id: str = OWNER_A, **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(role, owner_id, **kwargs)}"}


@pytest.fixture
def admin_headers() -> dict:
    return headers_for("admin")


@pytest.fixture
def staff_headers() -> dict:
    return headers_for("staff", user_id="user-2")


@pytest.fixture
def client_headers() -> dict:
    return headers_for("client", user_id="user-3", customer_ref=CUSTOMER)


@pytest.fixture
def admin_ctx() -> SessionContext:
    return SessionContext(owner_id=OWNER_A, role="admin", user_id="user-1")


@pytest.fixture
def staff_ctx() -> SessionContext:
    return SessionContext(owner_id=OWNER_A, role="staff", user_id="user-2")


@pytest.fixture
def client_ctx() -> SessionContext:
    return SessionContext(
        owner_id=OWNER_A, role="client", user_id="user-3", customer_ref=CUSTOMER,
    )


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
