"""
Pytest configuration and shared fixtures.

Each test gets its own SQLite database file (aiosqlite) with the full
schema; the app's get_db_session dependency is overridden to use it.
"""
import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import storefront.models  # noqa: F401
from storefront.core.database import Base, get_db_session
from storefront.core.security import create_access_token
from storefront.main import app as fastapi_app
from storefront.models.activity import ActivityEvent
from storefront.models.product import Product
from storefront.models.user import User


@pytest_asyncio.fixture
async def test_db_engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def app(session_factory):
    """The application wired to the per-test database."""

    async def _get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = _get_test_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Synchronous client for endpoints that never touch the database."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def create_user(session_factory) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user and returning it detached."""
    counter = {"n": 0}

    async def _create(**overrides: Any) -> User:
        counter["n"] += 1
        data = {
            "email": f"user{counter['n']}@example.com",
            "first_name": "Test",
            "last_name": f"User{counter['n']}",
            "role": "user",
            "engagement_score": 0.0,
        }
        data.update(overrides)
        async with session_factory() as session:
            user = User(**data)
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest.fixture
def create_product(session_factory) -> Callable[..., Awaitable[Product]]:
    async def _create(**overrides: Any) -> Product:
        data = {
            "title": "Deep Work Summary",
            "price": 9.99,
            "product_type": "pdf",
            "image": "https://cdn.example.com/deep-work.png",
        }
        data.update(overrides)
        async with session_factory() as session:
            product = Product(**data)
            session.add(product)
            await session.commit()
            return product

    return _create


@pytest.fixture
def create_events(session_factory) -> Callable[..., Awaitable[list[ActivityEvent]]]:
    """Factory inserting events directly, with caller-chosen timestamps."""

    async def _create(*events: dict[str, Any]) -> list[ActivityEvent]:
        rows = []
        for event in events:
            data = {
                "session_id": "s1",
                "activity_type": "page_view",
                "activity_data": {},
                "device_info": {},
                "location": {},
                "conversion_value": 0.0,
                "timestamp": datetime.now(timezone.utc),
            }
            data.update(event)
            rows.append(ActivityEvent(**data))
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _create


@pytest_asyncio.fixture
async def admin_user(create_user) -> User:
    return await create_user(email="admin@example.com", first_name="Ada", last_name="Admin", role="admin")


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    token = create_access_token(admin_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def customer_headers(create_user) -> dict[str, str]:
    customer = await create_user(email="customer@example.com")
    token = create_access_token(customer.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_track_payload() -> dict[str, Any]:
    return {
        "sessionId": "s1",
        "activityType": "product_view",
        "activityData": {"page": "/products/deep-work"},
        "funnelStage": "interest",
    }
