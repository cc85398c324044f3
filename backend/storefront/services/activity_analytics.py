"""
Activity analytics - read-only views computed over the activity event store.

Views:
1. Activity summary (histograms, conversion rate, recent events)
2. Conversion funnel (per-stage counts and stage-to-stage rates)
3. User journey (events grouped into browsing sessions)
4. Real-time feed (most recent events)
5. Engagement metrics (windowed per-user engagement rollup)
6. Single-user activity summary

Nothing here writes to the database. All hour and day buckets are UTC.
"""
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Literal, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.models.activity import FUNNEL_ORDER, ActivityEvent
from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories.activity import ActivityRepository
from storefront.repositories.product import ProductRepository
from storefront.repositories.user import UserRepository
from storefront.schemas.activity import (
    ActivityAnalytics as ActivityAnalyticsSummary,
    ActivityAnalyticsData,
    ActivityFeedItem,
    ConversionMetrics,
    EngagementData,
    EngagementMetrics,
    FunnelData,
    FunnelStageStats,
    JourneyData,
    JourneySession,
    ProductBrief,
    RealtimeData,
    UserActivitySummary,
    UserBrief,
    UserEngagement,
    as_utc,
)

logger = get_logger(__name__)

FunnelOrder = Literal["funnel", "count"]

UNKNOWN_PRODUCT = "Unknown Product"


def window_start(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing window of `days` days ending now."""
    return (now or datetime.now(timezone.utc)) - timedelta(days=days)


def windowed_engagement_score(total_activities: int, conversion_value: float) -> float:
    """
    Report-only engagement score for a time window.

    Not the persisted decaying score kept on the user record: this one has
    no decay and no cap, it only ranks users within a window.
    """
    return (total_activities + conversion_value * 0.1) * 2


def conversion_rate(conversions: int, total: int) -> float:
    """Percentage of events that converted; 0 for an empty window."""
    if total <= 0:
        return 0.0
    return conversions / total * 100


def summarize_activities(
    events: Sequence[ActivityEvent],
    product_titles: dict[str, str],
) -> ActivityAnalyticsSummary:
    """Histograms and conversion metrics over a set of events."""
    activity_types: Counter[str] = Counter()
    funnel_stages: Counter[str] = Counter()
    top_pages: Counter[str] = Counter()
    top_products: Counter[str] = Counter()
    hourly: Counter[str] = Counter()
    daily: Counter[str] = Counter()

    sessions: set[str] = set()
    users: set[UUID] = set()
    total_value = 0.0
    conversions = 0

    for event in events:
        sessions.add(event.session_id)
        if event.user_id is not None:
            users.add(event.user_id)

        activity_types[event.activity_type] += 1
        if event.funnel_stage:
            funnel_stages[event.funnel_stage] += 1

        value = event.conversion_value or 0.0
        total_value += value
        if value > 0:
            conversions += 1

        if event.page:
            top_pages[event.page] += 1
        if event.product_id:
            top_products[product_titles.get(str(event.product_id), UNKNOWN_PRODUCT)] += 1

        timestamp = as_utc(event.timestamp)
        hourly[str(timestamp.hour)] += 1
        daily[timestamp.strftime("%Y-%m-%d")] += 1

    total = len(events)
    return ActivityAnalyticsSummary(
        total_activities=total,
        unique_users=len(users),
        unique_sessions=len(sessions),
        activity_types=dict(activity_types),
        funnel_stages=dict(funnel_stages),
        conversion_metrics=ConversionMetrics(
            total_value=round(total_value, 2),
            conversions=conversions,
            conversion_rate=conversion_rate(conversions, total),
        ),
        top_pages=dict(top_pages.most_common()),
        top_products=dict(top_products.most_common()),
        hourly_distribution=dict(sorted(hourly.items(), key=lambda item: int(item[0]))),
        daily_distribution=dict(sorted(daily.items())),
    )


def order_funnel(
    stage_stats: Iterable[dict[str, Any]],
    order: FunnelOrder = "funnel",
) -> list[FunnelStageStats]:
    """
    Arrange funnel stages and derive stage-to-stage conversion rates.

    "funnel" puts stages in canonical sequence (awareness through retention)
    so each rate compares a stage with the one that follows it. "count"
    sorts by raw event count descending; adjacency rates are then only
    meaningful when stage popularity happens to follow the funnel.
    """
    stats = list(stage_stats)
    if order == "funnel":
        rank = {stage: index for index, stage in enumerate(FUNNEL_ORDER)}
        stats.sort(key=lambda s: rank.get(s["stage"], len(rank)))
    elif order == "count":
        stats.sort(key=lambda s: (-s["count"], s["stage"]))
    else:
        raise ValueError(f"Unknown funnel order: {order!r}")

    funnel: list[FunnelStageStats] = []
    for index, stage in enumerate(stats):
        next_stage = stats[index + 1] if index + 1 < len(stats) else None
        rate = 0.0
        if next_stage is not None and stage["count"] > 0:
            rate = round(next_stage["count"] / stage["count"] * 100, 2)
        funnel.append(
            FunnelStageStats(
                stage=stage["stage"],
                count=stage["count"],
                unique_users=stage["unique_users"],
                total_conversion_value=round(stage.get("total_conversion_value", 0.0), 2),
                next_stage_conversion_rate=rate,
            )
        )
    return funnel


def group_sessions(items: Sequence[ActivityFeedItem]) -> list[JourneySession]:
    """
    Group chronologically ordered events into one object per session id.

    Sessions come out in order of their first event.
    """
    grouped: dict[str, list[ActivityFeedItem]] = {}
    for item in items:
        grouped.setdefault(item.session_id, []).append(item)

    sessions: list[JourneySession] = []
    for session_id, activities in grouped.items():
        start_time = min(a.timestamp for a in activities)
        end_time = max(a.timestamp for a in activities)
        user_id = next((a.user_id for a in activities if a.user_id is not None), None)
        sessions.append(
            JourneySession(
                session_id=session_id,
                user_id=user_id,
                start_time=start_time,
                end_time=end_time,
                activities=activities,
                total_time=round((end_time - start_time).total_seconds()),
                conversion_value=round(sum(a.conversion_value or 0.0 for a in activities), 2),
            )
        )
    sessions.sort(key=lambda s: s.start_time)
    return sessions


def rollup_engagement(
    per_user: Iterable[dict[str, Any]],
    threshold: float,
    top_n: int,
) -> EngagementData:
    """Aggregate per-user windowed engagement into site-wide metrics."""
    users = [
        UserEngagement(
            user_id=row["user_id"],
            total_activities=row["total_activities"],
            unique_sessions=row["unique_sessions"],
            conversion_value=round(row["conversion_value"], 2),
            last_activity=row["last_activity"],
            engagement_score=round(
                windowed_engagement_score(row["total_activities"], row["conversion_value"]), 2
            ),
        )
        for row in per_user
    ]

    if not users:
        return EngagementData(metrics=EngagementMetrics(), top_users=[])

    count = len(users)
    metrics = EngagementMetrics(
        total_users=count,
        avg_activities_per_user=round(sum(u.total_activities for u in users) / count, 2),
        avg_sessions_per_user=round(sum(u.unique_sessions for u in users) / count, 2),
        total_conversion_value=round(sum(u.conversion_value for u in users), 2),
        avg_engagement_score=round(sum(u.engagement_score for u in users) / count, 2),
        highly_engaged_users=sum(1 for u in users if u.engagement_score >= threshold),
    )

    ranked = sorted(
        users,
        key=lambda u: (u.engagement_score, u.last_activity or datetime.min.replace(tzinfo=timezone.utc)),
        reverse=True,
    )
    return EngagementData(metrics=metrics, top_users=ranked[:top_n])


def user_brief(user: User) -> UserBrief:
    return UserBrief(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
    )


def product_brief(product: Product) -> ProductBrief:
    return ProductBrief(
        id=product.id,
        title=product.title,
        price=float(product.price),
        type=product.product_type,
        image=product.image,
    )


class ActivityAnalytics:
    """Computes analytics views over the activity event store."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.events = ActivityRepository(session)
        self.users = UserRepository(session)
        self.products = ProductRepository(session)

    async def enrich(self, events: Sequence[ActivityEvent]) -> list[ActivityFeedItem]:
        """Join user and product display fields onto events, without writing anything."""
        users = await self.users.get_many(e.user_id for e in events if e.user_id is not None)
        products = await self.products.get_by_payload_ids(e.product_id for e in events)

        items: list[ActivityFeedItem] = []
        for event in events:
            item = ActivityFeedItem.model_validate(event)
            user = users.get(event.user_id) if event.user_id is not None else None
            product = products.get(str(event.product_id)) if event.product_id else None
            item.user = user_brief(user) if user else None
            item.product = product_brief(product) if product else None
            items.append(item)
        return items

    async def summary(
        self,
        *,
        days: int,
        user_id: Optional[UUID] = None,
        activity_type: Optional[str] = None,
        funnel_stage: Optional[str] = None,
    ) -> ActivityAnalyticsData:
        """Activity summary over the trailing window, plus the most recent events."""
        events = await self.events.query(
            order="desc",
            user_id=user_id,
            activity_type=activity_type,
            funnel_stage=funnel_stage,
            since=window_start(days),
        )

        products = await self.products.get_by_payload_ids(e.product_id for e in events)
        titles = {product_id: p.title for product_id, p in products.items()}
        analytics = summarize_activities(events, titles)

        recent = await self.enrich(events[: settings.summary_recent_limit])

        logger.info(
            "Activity summary computed",
            days=days,
            total=analytics.total_activities,
        )
        return ActivityAnalyticsData(analytics=analytics, activities=recent)

    async def funnel(self, *, days: int, order: FunnelOrder = "funnel") -> FunnelData:
        """Conversion funnel over the trailing window."""
        stats = await self.events.funnel_stage_stats(window_start(days))
        return FunnelData(funnel=order_funnel(stats, order), order=order)

    async def journey(
        self,
        *,
        days: int,
        user_id: Optional[UUID] = None,
        session_id: Optional[str] = None,
    ) -> JourneyData:
        """Chronological journey for exactly one user or one session."""
        if (user_id is None) == (session_id is None):
            raise ValueError("Exactly one of user_id or session_id is required")

        events = await self.events.query(
            order="asc",
            user_id=user_id,
            session_id=session_id,
            since=window_start(days),
        )
        sessions = group_sessions(await self.enrich(events))
        return JourneyData(sessions=sessions, total_sessions=len(sessions))

    async def realtime(self, *, limit: int) -> RealtimeData:
        """The `limit` most recent events across all users."""
        events = await self.events.query(order="desc", limit=limit)
        return RealtimeData(activities=await self.enrich(events))

    async def engagement(self, *, days: int, limit: int) -> EngagementData:
        """Windowed per-user engagement rollup."""
        per_user = await self.events.per_user_activity(window_start(days))
        return rollup_engagement(
            per_user,
            threshold=settings.highly_engaged_threshold,
            top_n=limit,
        )

    async def user_summary(self, user: User, *, days: int) -> UserActivitySummary:
        """Activity summary for one user; products are keyed by id."""
        events = await self.events.query(
            order="desc",
            user_id=user.id,
            since=window_start(days),
        )

        activity_types: Counter[str] = Counter(e.activity_type for e in events)
        funnel_stages: Counter[str] = Counter(e.funnel_stage for e in events if e.funnel_stage)
        top_pages: Counter[str] = Counter(e.page for e in events if e.page)
        top_products: Counter[str] = Counter(str(e.product_id) for e in events if e.product_id)

        return UserActivitySummary(
            user_id=user.id,
            total_activities=len(events),
            unique_sessions=len({e.session_id for e in events}),
            activity_types=dict(activity_types),
            funnel_stages=dict(funnel_stages),
            conversion_value=round(sum(e.conversion_value or 0.0 for e in events), 2),
            last_activity=events[0].timestamp if events else None,
            top_pages=dict(top_pages.most_common()),
            top_products=dict(top_products.most_common()),
            engagement_score=round(user.engagement_score or 0.0, 2),
            last_seen=user.last_activity,
        )
