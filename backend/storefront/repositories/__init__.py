"""
Repository package for data access layer.
"""
from storefront.repositories.activity import ActivityRepository
from storefront.repositories.base import BaseRepository
from storefront.repositories.product import ProductRepository
from storefront.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "ActivityRepository",
    "UserRepository",
    "ProductRepository",
]
