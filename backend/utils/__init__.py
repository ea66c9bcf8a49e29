"""
Utility modules for the backend
"""

from .database import ProductDatabase

__all__ = [
    "ProductDatabase"
]
