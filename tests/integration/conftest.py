"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Requires live PostgreSQL and Redis, migrated with `alembic upgrade head`.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from config.settings import settings

from src.main import app


def _identity(prefix: str) -> dict[str, str]:
    return {"X-User-Id": f"{prefix}_{uuid.uuid4().hex[:12]}"}


def make_session() -> AsyncSession:
    """Fresh session with NullPool to avoid event-loop binding."""
    engine = create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return factory()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Open an account and flag it admin directly in the database."""
    headers = _identity("admin")
    await client.post("/api/v1/account", headers=headers)
    async with make_session() as db:
        await db.execute(
            text("UPDATE accounts SET is_admin = TRUE WHERE user_id = :uid"),
            {"uid": headers["X-User-Id"]},
        )
        await db.commit()
    return headers


@pytest_asyncio.fixture(loop_scope="session")
async def market_id(client: AsyncClient, admin_headers: dict[str, str]) -> str:
    """A brand-new open market for the calling test."""
    resp = await client.post(
        "/api/v1/admin/markets",
        headers=admin_headers,
        json={"question": f"Integration market {uuid.uuid4().hex[:6]}?", "group_topic": "it"},
    )
    return str(resp.json()["data"]["id"])


@pytest.fixture
def fresh_user():
    """Factory for identity headers of users nobody has touched yet."""

    def _make(prefix: str = "it") -> dict[str, str]:
        return _identity(prefix)

    return _make
