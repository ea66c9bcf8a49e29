"""
Utility modules for the gateway
"""

from .backend_client import BackendClient, RequestTooLargeError, ResponseTooLargeError

__all__ = [
    "BackendClient",
    "RequestTooLargeError",
    "ResponseTooLargeError"
]
