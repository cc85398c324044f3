"""
Core package: settings, database, logging and admin tokens.
"""
from storefront.core.config import settings
from storefront.core.database import Base, get_db_session
from storefront.core.logging import configure_logging, get_logger
from storefront.core.security import create_access_token, decode_access_token

__all__ = [
    "settings",
    "Base",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "create_access_token",
    "decode_access_token",
]
