"""
Engagement scorer - keeps a decaying 0-100 engagement gauge per user.

The score is recomputed on every event that carries a user id:

    new = min(100, prior * decay + base_increment + conversion_bonus)

Decay is pull-based: nothing runs on a schedule, the elapsed time since the
user's last activity is applied at the moment of the next update. The
retention factor loses 10% per idle day but never drops below 0.9, so a
single update removes at most 10% of the prior score however long the gap.

Concurrent events for the same user race on the read-modify-write and one
update can be lost. The score is a best-effort signal, not a ledger.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.repositories.user import UserRepository

logger = get_logger(__name__)

# Base increment per activity type; anything not listed scores DEFAULT_ACTIVITY_SCORE
ACTIVITY_SCORES: dict[str, float] = {
    "page_view": 1,
    "product_view": 2,
    "add_to_cart": 5,
    "checkout_start": 10,
    "payment_success": 20,
    "download": 3,
    "search": 2,
    "login": 1,
    "register": 5,
}
DEFAULT_ACTIVITY_SCORE = 1.0

CONVERSION_BONUS_DIVISOR = 10.0
CONVERSION_BONUS_CAP = 50.0
DAILY_DECAY = 0.1
DECAY_FLOOR = 0.9
MAX_SCORE = 100.0
MIN_SCORE = 0.0

SECONDS_PER_DAY = 86400.0


def base_increment(activity_type: str) -> float:
    """Score contributed by the activity type alone."""
    return float(ACTIVITY_SCORES.get(activity_type, DEFAULT_ACTIVITY_SCORE))


def conversion_bonus(conversion_value: Optional[float]) -> float:
    """One point per 10 units of conversion value, capped at 50."""
    if not conversion_value or conversion_value <= 0:
        return 0.0
    return min(conversion_value / CONVERSION_BONUS_DIVISOR, CONVERSION_BONUS_CAP)


def elapsed_days(last_activity: Optional[datetime], now: datetime) -> float:
    """Fractional days since the last activity; 0 when unknown or in the future."""
    if last_activity is None:
        return 0.0
    if last_activity.tzinfo is None:
        last_activity = last_activity.replace(tzinfo=timezone.utc)
    seconds = (now - last_activity).total_seconds()
    return max(seconds, 0.0) / SECONDS_PER_DAY


def decay_factor(days: float) -> float:
    """Retention applied to the prior score, floored at 0.9."""
    return max(DECAY_FLOOR, 1 - days * DAILY_DECAY)


def compute_engagement_score(
    prior_score: Optional[float],
    last_activity: Optional[datetime],
    activity_type: str,
    conversion_value: Optional[float],
    now: Optional[datetime] = None,
) -> float:
    """Pure score update for one event."""
    now = now or datetime.now(timezone.utc)
    prior = prior_score or 0.0
    increment = base_increment(activity_type) + conversion_bonus(conversion_value)
    factor = decay_factor(elapsed_days(last_activity, now))
    new_score = min(MAX_SCORE, prior * factor + increment)
    return max(MIN_SCORE, new_score)


class EngagementScorer:
    """Applies score updates to users through the user directory."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)

    async def apply_event(
        self,
        user_id: UUID,
        activity_type: str,
        conversion_value: Optional[float] = 0.0,
    ) -> Optional[float]:
        """
        Recompute and persist the user's score.

        Returns the new score, or None when the user is unknown or the
        update failed. Never raises: failures are logged and dropped,
        with no retry.
        """
        try:
            user = await self.users.get_by_id(user_id)
            if user is None:
                logger.debug("Engagement update skipped, unknown user", user_id=str(user_id))
                return None

            now = datetime.now(timezone.utc)
            new_score = compute_engagement_score(
                user.engagement_score,
                user.last_activity,
                activity_type,
                conversion_value,
                now=now,
            )
            await self.users.update_engagement(user, new_score, now)
            await self.session.commit()

            logger.debug(
                "Engagement score updated",
                user_id=str(user_id),
                activity_type=activity_type,
                score=round(new_score, 2),
            )
            return new_score
        except Exception as e:
            logger.error(
                "Engagement score update failed",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )
            await self.session.rollback()
            return None
