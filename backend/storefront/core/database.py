"""
Async SQLAlchemy engine, session factory and the request-scoped session dependency.
"""
import re
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by the event store and its collaborators."""


def _redact(url: str) -> str:
    return re.sub(r":([^:@/]+)@", ":***@", url)


def engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments for the given backend."""
    options: dict[str, Any] = {"echo": settings.database_echo}
    # SQLite has no sized pool
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return options


def create_engine(url: str | None = None) -> AsyncEngine:
    url = url or settings.database_url
    logger.info("Creating database engine", url=_redact(url))
    return create_async_engine(url, **engine_options(url))


engine = create_engine()
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request.

    Committed when the handler returns, rolled back if it raises. Services
    that need an earlier commit (the ingestion path does) issue it themselves.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables. Existing tables are left untouched."""
    import storefront.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")
