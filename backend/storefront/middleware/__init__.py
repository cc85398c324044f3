"""
Middleware package.
"""
from storefront.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
)
from storefront.middleware.request_context import RequestContextMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestContextMiddleware",
    "register_exception_handlers",
]
