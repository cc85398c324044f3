"""
SQLAlchemy models package.
All models are imported here so they register on the shared metadata.
"""
from storefront.models.activity import (
    FUNNEL_ORDER,
    ActivityEvent,
    ActivityType,
    ConversionType,
    FunnelStage,
)
from storefront.models.product import Product, ProductType
from storefront.models.user import User, UserRole

__all__ = [
    # Activity core
    "ActivityEvent",
    "ActivityType",
    "ConversionType",
    "FunnelStage",
    "FUNNEL_ORDER",
    # Collaborators
    "User",
    "UserRole",
    "Product",
    "ProductType",
]
