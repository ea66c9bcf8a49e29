"""
Product gateway service

The only externally reachable endpoint. Forwards /api/* to the backend.
"""

__version__ = "1.0.0"
