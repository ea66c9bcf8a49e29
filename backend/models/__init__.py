"""
Data models for the backend
"""

from .product import Product, ProductCreate

__all__ = [
    "Product",
    "ProductCreate"
]
