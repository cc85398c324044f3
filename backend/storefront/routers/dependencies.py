"""
Shared FastAPI dependencies: admin authentication and service wiring.
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db_session
from storefront.core.logging import get_logger
from storefront.core.security import token_subject
from storefront.models.user import User
from storefront.repositories.user import UserRepository
from storefront.services.activity_analytics import ActivityAnalytics
from storefront.services.activity_tracker import ActivityTracker

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> User:
    """
    Resolve the bearer token to an active user.

    Raises:
        HTTPException: 401 if the token is missing, invalid or names no active user
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")

    user_id = token_subject(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")

    user = await UserRepository(session).get_by_id(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Require an authenticated administrator.

    Raises:
        HTTPException: 403 if the user is not an admin
    """
    if not user.is_admin:
        logger.warning("Admin access denied", user_id=str(user.id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user


async def get_activity_tracker(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ActivityTracker:
    """Dependency to get the ingestion service."""
    return ActivityTracker(session)


async def get_activity_analytics(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ActivityAnalytics:
    """Dependency to get the analytics service."""
    return ActivityAnalytics(session)
