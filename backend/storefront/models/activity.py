"""
Activity event model - append-only log of tracked user and visitor actions.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, Index, String, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from storefront.core.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Server clock, always timezone-aware UTC."""
    return datetime.now(timezone.utc)


class ActivityType(str, Enum):
    """Closed set of trackable activity types."""

    # Page visits
    PAGE_VIEW = "page_view"
    PRODUCT_VIEW = "product_view"
    CATEGORY_VIEW = "category_view"

    # Cart
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"
    UPDATE_CART = "update_cart"
    VIEW_CART = "view_cart"

    # Checkout
    CHECKOUT_START = "checkout_start"
    CHECKOUT_STEP = "checkout_step"
    PAYMENT_ATTEMPT = "payment_attempt"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"

    # Account
    LOGIN = "login"
    LOGOUT = "logout"
    REGISTER = "register"
    PROFILE_UPDATE = "profile_update"
    PASSWORD_CHANGE = "password_change"

    # Engagement
    SEARCH = "search"
    FILTER = "filter"
    SORT = "sort"
    DOWNLOAD = "download"
    SHARE = "share"
    BOOKMARK = "bookmark"

    # Lead generation
    LEAD_MAGNET_VIEW = "lead_magnet_view"
    LEAD_MAGNET_DOWNLOAD = "lead_magnet_download"
    NEWSLETTER_SIGNUP = "newsletter_signup"

    # Support
    CONTACT_FORM = "contact_form"
    FAQ_VIEW = "faq_view"
    SUPPORT_TICKET = "support_ticket"

    # Session markers
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    BOUNCE = "bounce"
    RETURN_VISIT = "return_visit"


class ConversionType(str, Enum):
    """Named conversions an event can represent."""

    PURCHASE = "purchase"
    LEAD = "lead"
    DOWNLOAD = "download"
    SIGNUP = "signup"
    ENGAGEMENT = "engagement"


class FunnelStage(str, Enum):
    """Funnel stages, declared in canonical funnel order."""

    AWARENESS = "awareness"
    INTEREST = "interest"
    CONSIDERATION = "consideration"
    INTENT = "intent"
    PURCHASE = "purchase"
    RETENTION = "retention"


FUNNEL_ORDER: tuple[str, ...] = tuple(stage.value for stage in FunnelStage)


class ActivityEvent(Base):
    """
    One immutable record per tracked action.

    Rows are written once at ingestion and never updated or deleted.
    `timestamp` is the server clock at ingestion and the only ordering key.
    """

    __tablename__ = "activity_events"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Who (user_id is not a foreign key: events of deleted users are kept)
    user_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        nullable=True,
        index=True,
    )
    session_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    # What
    activity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    activity_data: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        default=dict,
    )

    # Context (client reported, best effort)
    device_info: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        default=dict,
    )
    location: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        default=dict,
    )

    # When
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )

    # Conversion tracking
    conversion_value: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
    )
    conversion_type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )
    funnel_stage: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_activity_user_timestamp", "user_id", "timestamp"),
        Index("idx_activity_type_timestamp", "activity_type", "timestamp"),
        Index("idx_activity_session_timestamp", "session_id", "timestamp"),
        Index("idx_activity_funnel_timestamp", "funnel_stage", "timestamp"),
    )

    @property
    def product_id(self) -> Optional[str]:
        """Product referenced by the payload, if any."""
        return (self.activity_data or {}).get("productId")

    @property
    def page(self) -> Optional[str]:
        return (self.activity_data or {}).get("page")

    def __repr__(self) -> str:
        return f"<ActivityEvent {self.activity_type} session={self.session_id}>"
