"""
Service info and probe endpoints (unauthenticated).
"""
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db_session
from storefront.core.logging import get_logger
from storefront.models.activity import ActivityEvent

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def service_info() -> dict:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "running",
    }


@router.get("/health")
async def health() -> dict:
    """Process is up; nothing downstream is checked."""
    return {"status": "healthy", "version": settings.app_version, "timestamp": _now()}


@router.get("/health/live")
async def liveness() -> dict:
    return {"status": "alive", "timestamp": _now()}


@router.get("/health/ready")
async def readiness(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> dict:
    """
    Ready once the event store answers a query.

    Reads one row id from the activity table, which fails if the database
    is down or the schema has not been created yet.
    """
    try:
        await session.execute(select(ActivityEvent.id).limit(1))
        store = "connected"
    except Exception as e:
        logger.warning("Event store not reachable", error=str(e))
        store = "unavailable"

    return {
        "status": "ready" if store == "connected" else "not_ready",
        "checks": {"database": store},
        "timestamp": _now(),
    }
