"""
Activity tracking and analytics API routes.

POST /track is public so anonymous visitors can be tracked; every read
endpoint requires an admin bearer token.
"""
from typing import Annotated, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.models.activity import ActivityType, FunnelStage
from storefront.routers.dependencies import (
    get_activity_analytics,
    get_activity_tracker,
    require_admin,
)
from storefront.schemas.activity import (
    ActivityAnalyticsData,
    ActivityResponse,
    EngagementData,
    FunnelData,
    JourneyData,
    RealtimeData,
    TrackActivityData,
    TrackActivityRequest,
    UserActivitySummary,
)
from storefront.schemas.common import ApiResponse
from storefront.services.activity_analytics import ActivityAnalytics
from storefront.services.activity_tracker import ActivityTracker

logger = get_logger(__name__)

router = APIRouter(prefix="/activities", tags=["activities"])

# Admin-only routes hang off this sub-router
admin_router = APIRouter(dependencies=[Depends(require_admin)])

Days = Annotated[int, Query(ge=1, le=365, description="Trailing window in days")]
Limit = Annotated[int, Query(ge=1, le=1000, description="Maximum number of items")]


def _client_ip(request: Request) -> Optional[str]:
    """Client IP, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


@router.post(
    "/track",
    response_model=ApiResponse[TrackActivityData],
    status_code=status.HTTP_201_CREATED,
)
async def track_activity(
    body: TrackActivityRequest,
    request: Request,
    tracker: Annotated[ActivityTracker, Depends(get_activity_tracker)],
) -> ApiResponse[TrackActivityData]:
    """
    Record one activity event.

    The server assigns the event id and timestamp. When the event carries a
    userId the user's engagement score is updated on a best-effort basis;
    a scoring failure never fails this call.
    """
    try:
        event = await tracker.record(
            body,
            user_agent=request.headers.get("user-agent"),
            client_ip=_client_ip(request),
        )
    except Exception as e:
        logger.error("Activity tracking failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    return ApiResponse(
        message="Activity tracked successfully",
        data=TrackActivityData(activity=ActivityResponse.model_validate(event)),
    )


@admin_router.get("/analytics", response_model=ApiResponse[ActivityAnalyticsData])
async def get_activity_analytics_summary(
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    days: Days = settings.activity_default_days,
    user_id: Annotated[Optional[UUID], Query(alias="userId")] = None,
    activity_type: Annotated[Optional[ActivityType], Query(alias="activityType")] = None,
    funnel_stage: Annotated[Optional[FunnelStage], Query(alias="funnelStage")] = None,
) -> ApiResponse[ActivityAnalyticsData]:
    """Activity summary: histograms, conversion rate and the 100 most recent events."""
    data = await analytics.summary(
        days=days,
        user_id=user_id,
        activity_type=activity_type.value if activity_type else None,
        funnel_stage=funnel_stage.value if funnel_stage else None,
    )
    return ApiResponse(data=data)


@admin_router.get("/funnel", response_model=ApiResponse[FunnelData])
async def get_conversion_funnel(
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    days: Days = settings.activity_default_days,
    order: Annotated[
        Literal["funnel", "count"],
        Query(description="funnel: canonical stage order; count: by event count"),
    ] = "funnel",
) -> ApiResponse[FunnelData]:
    """Per-stage counts with stage-to-stage conversion rates."""
    data = await analytics.funnel(days=days, order=order)
    return ApiResponse(data=data)


@admin_router.get("/journey", response_model=ApiResponse[JourneyData])
async def get_user_journey(
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    days: Days = settings.journey_default_days,
    user_id: Annotated[Optional[UUID], Query(alias="userId")] = None,
    session_id: Annotated[Optional[str], Query(alias="sessionId", min_length=1, pattern=r"\S")] = None,
) -> ApiResponse[JourneyData]:
    """Events for one user or one session, grouped into browsing sessions."""
    if user_id is None and session_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either userId or sessionId is required",
        )
    if user_id is not None and session_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide only one of userId or sessionId",
        )

    data = await analytics.journey(days=days, user_id=user_id, session_id=session_id)
    return ApiResponse(data=data)


@admin_router.get("/realtime", response_model=ApiResponse[RealtimeData])
async def get_realtime_activity(
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    limit: Limit = settings.realtime_default_limit,
) -> ApiResponse[RealtimeData]:
    """Most recent events across all users, newest first."""
    data = await analytics.realtime(limit=limit)
    return ApiResponse(data=data)


@admin_router.get("/engagement", response_model=ApiResponse[EngagementData])
async def get_engagement_metrics(
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    days: Days = settings.activity_default_days,
    limit: Limit = settings.realtime_default_limit,
) -> ApiResponse[EngagementData]:
    """Windowed engagement rollup and the most engaged users."""
    data = await analytics.engagement(days=days, limit=limit)
    return ApiResponse(data=data)


@admin_router.get("/users/{user_id}/summary", response_model=ApiResponse[UserActivitySummary])
async def get_user_activity_summary(
    user_id: UUID,
    analytics: Annotated[ActivityAnalytics, Depends(get_activity_analytics)],
    days: Days = settings.activity_default_days,
) -> ApiResponse[UserActivitySummary]:
    """Activity summary for a single user, with their persisted engagement score."""
    user = await analytics.users.get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    data = await analytics.user_summary(user, days=days)
    return ApiResponse(data=data)


router.include_router(admin_router)
