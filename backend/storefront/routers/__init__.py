"""
API routers package.
"""
from storefront.routers.activities import router as activities_router
from storefront.routers.health import router as health_router

__all__ = [
    "health_router",
    "activities_router",
]
