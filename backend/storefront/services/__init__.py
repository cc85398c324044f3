"""
Services package for business logic layer.
"""
from storefront.services.activity_analytics import ActivityAnalytics
from storefront.services.activity_tracker import ActivityTracker
from storefront.services.engagement import EngagementScorer, compute_engagement_score

__all__ = [
    "ActivityTracker",
    "ActivityAnalytics",
    "EngagementScorer",
    "compute_engagement_score",
]
