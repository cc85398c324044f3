"""
User repository - the user directory as seen by the activity core.
"""
from datetime import datetime

from storefront.models.user import User
from storefront.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    model = User

    async def update_engagement(
        self,
        user: User,
        score: float,
        last_activity: datetime,
    ) -> User:
        """Persist a recomputed engagement score and activity timestamp."""
        user.engagement_score = score
        user.last_activity = last_activity
        await self.session.flush()
        return user
