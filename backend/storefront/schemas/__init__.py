"""
Pydantic schemas package.
"""
from storefront.schemas.activity import (
    ActivityAnalytics,
    ActivityAnalyticsData,
    ActivityData,
    ActivityFeedItem,
    ActivityResponse,
    ConversionMetrics,
    DeviceInfo,
    EngagementData,
    EngagementMetrics,
    FunnelData,
    FunnelStageStats,
    JourneyData,
    JourneySession,
    Location,
    ProductBrief,
    RealtimeData,
    TrackActivityData,
    TrackActivityRequest,
    UserActivitySummary,
    UserBrief,
    UserEngagement,
)
from storefront.schemas.common import ApiResponse

__all__ = [
    # Envelope
    "ApiResponse",
    # Ingestion
    "ActivityData",
    "DeviceInfo",
    "Location",
    "TrackActivityRequest",
    "TrackActivityData",
    # Read side
    "ActivityResponse",
    "ActivityFeedItem",
    "UserBrief",
    "ProductBrief",
    "ActivityAnalytics",
    "ActivityAnalyticsData",
    "ConversionMetrics",
    "FunnelStageStats",
    "FunnelData",
    "JourneySession",
    "JourneyData",
    "RealtimeData",
    "UserEngagement",
    "EngagementMetrics",
    "EngagementData",
    "UserActivitySummary",
]
