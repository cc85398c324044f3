"""
Activity Pydantic schemas for request/response validation.

Wire format is camelCase; Python attribute names stay snake_case.
"""
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from storefront.models.activity import ActivityType, ConversionType, FunnelStage


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values are taken as UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    """Base schema exposing camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class ActivityData(CamelModel):
    """
    Per-type activity payload.

    Every field is optional; which ones are meaningful depends on the
    activity type (productId for product views, searchQuery for search...).
    Unknown keys are dropped, free-form data goes under `metadata`.
    """

    # Page/product
    page: Optional[str] = Field(None, max_length=1024)
    product_id: Optional[UUID] = None
    category: Optional[str] = Field(None, max_length=255)
    search_query: Optional[str] = Field(None, max_length=500)

    # Cart
    cart_item_id: Optional[UUID] = None
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    # Checkout
    checkout_step: Optional[str] = Field(None, max_length=100)
    payment_method: Optional[str] = Field(None, max_length=100)
    order_id: Optional[UUID] = None
    total_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)

    # Client
    user_agent: Optional[str] = Field(None, max_length=1024)
    ip_address: Optional[str] = Field(None, max_length=64)
    referrer: Optional[str] = Field(None, max_length=2048)

    # Engagement
    time_spent: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    scroll_depth: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    clicks: Optional[int] = Field(None, ge=0)

    metadata: Optional[dict[str, Any]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DeviceInfo(CamelModel):
    """Client-reported device details."""

    device_type: Optional[str] = Field(None, max_length=50)
    browser: Optional[str] = Field(None, max_length=100)
    os: Optional[str] = Field(None, max_length=100)
    screen_resolution: Optional[str] = Field(None, max_length=50)
    user_agent: Optional[str] = Field(None, max_length=1024)
    ip_address: Optional[str] = Field(None, max_length=64)


class Location(CamelModel):
    """Best-effort geographic hints."""

    country: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, max_length=100)


class TrackActivityRequest(CamelModel):
    """Body of POST /activities/track. The server assigns id and timestamp."""

    user_id: Optional[UUID] = None
    session_id: str = Field(..., min_length=1, max_length=255)
    activity_type: ActivityType
    activity_data: ActivityData = Field(default_factory=ActivityData)
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    location: Location = Field(default_factory=Location)
    conversion_value: float = Field(0.0, ge=0, allow_inf_nan=False)
    conversion_type: Optional[ConversionType] = None
    funnel_stage: Optional[FunnelStage] = None

    @field_validator("session_id")
    @classmethod
    def session_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sessionId must not be blank")
        return value


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


class UserBrief(CamelModel):
    """User display fields joined onto events."""

    id: UUID
    first_name: str
    last_name: str
    email: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ProductBrief(CamelModel):
    """Product display fields joined onto events."""

    id: UUID
    title: str
    price: float
    type: str
    image: Optional[str] = None


class ActivityResponse(CamelModel):
    """A stored activity event."""

    id: UUID
    user_id: Optional[UUID] = None
    session_id: str
    activity_type: str
    activity_data: dict[str, Any] = Field(default_factory=dict)
    device_info: dict[str, Any] = Field(default_factory=dict)
    location: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    conversion_value: float = 0.0
    conversion_type: Optional[str] = None
    funnel_stage: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("timestamp")
    @classmethod
    def timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("activity_data", "device_info", "location", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return value or {}


class ActivityFeedItem(ActivityResponse):
    """Activity event enriched with user and product display fields."""

    user: Optional[UserBrief] = None
    product: Optional[ProductBrief] = None


class TrackActivityData(CamelModel):
    activity: ActivityResponse


class ConversionMetrics(CamelModel):
    total_value: float = 0.0
    conversions: int = 0
    conversion_rate: float = 0.0


class ActivityAnalytics(CamelModel):
    """Windowed activity summary. Hour and day buckets are UTC."""

    total_activities: int = 0
    unique_users: int = 0
    unique_sessions: int = 0
    activity_types: dict[str, int] = Field(default_factory=dict)
    funnel_stages: dict[str, int] = Field(default_factory=dict)
    conversion_metrics: ConversionMetrics = Field(default_factory=ConversionMetrics)
    top_pages: dict[str, int] = Field(default_factory=dict)
    top_products: dict[str, int] = Field(default_factory=dict)
    hourly_distribution: dict[str, int] = Field(default_factory=dict)
    daily_distribution: dict[str, int] = Field(default_factory=dict)


class ActivityAnalyticsData(CamelModel):
    analytics: ActivityAnalytics
    activities: list[ActivityFeedItem]


class FunnelStageStats(CamelModel):
    stage: str
    count: int
    unique_users: int
    total_conversion_value: float = 0.0
    next_stage_conversion_rate: float = 0.0


class FunnelData(CamelModel):
    funnel: list[FunnelStageStats]
    order: str


class JourneySession(CamelModel):
    """Events of one browsing session, in chronological order."""

    session_id: str
    user_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    activities: list[ActivityFeedItem]
    total_time: int = Field(0, description="Seconds between first and last event")
    conversion_value: float = 0.0


class JourneyData(CamelModel):
    sessions: list[JourneySession]
    total_sessions: int


class RealtimeData(CamelModel):
    activities: list[ActivityFeedItem]


class UserEngagement(CamelModel):
    """Per-user windowed engagement (not the persisted decaying score)."""

    user_id: UUID
    total_activities: int
    unique_sessions: int
    conversion_value: float
    last_activity: Optional[datetime] = None
    engagement_score: float

    @field_validator("last_activity")
    @classmethod
    def last_activity_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class EngagementMetrics(CamelModel):
    total_users: int = 0
    avg_activities_per_user: float = 0.0
    avg_sessions_per_user: float = 0.0
    total_conversion_value: float = 0.0
    avg_engagement_score: float = 0.0
    highly_engaged_users: int = 0


class EngagementData(CamelModel):
    metrics: EngagementMetrics
    top_users: list[UserEngagement]


class UserActivitySummary(CamelModel):
    """Windowed activity summary for a single user."""

    user_id: UUID
    total_activities: int = 0
    unique_sessions: int = 0
    activity_types: dict[str, int] = Field(default_factory=dict)
    funnel_stages: dict[str, int] = Field(default_factory=dict)
    conversion_value: float = 0.0
    last_activity: Optional[datetime] = None
    top_pages: dict[str, int] = Field(default_factory=dict)
    top_products: dict[str, int] = Field(default_factory=dict)
    engagement_score: float = 0.0
    last_seen: Optional[datetime] = None

    @field_validator("last_activity", "last_seen")
    @classmethod
    def datetimes_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)
