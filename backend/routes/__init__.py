"""
API routes for the backend
"""

from . import health, products

__all__ = ["health", "products"]
