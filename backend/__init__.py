"""
Product backend service

Internal product CRUD service reached only through the gateway.
"""

__version__ = "1.0.0"
