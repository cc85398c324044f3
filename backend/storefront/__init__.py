"""
Storefront activity tracking and analytics service.
"""
__version__ = "1.0.0"
