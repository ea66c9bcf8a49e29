"""
Shared utilities for the product gateway services

This package contains common utilities used by the gateway and the backend.
"""

from .logger import setup_logging, RequestLogger, get_request_logger
from .readiness import DependencyUnavailableError, wait_until_ready, http_probe
from .security import apply_security_headers, sanitize_input, sanitize_fields, sanitize_items, mask_error_message

__all__ = [
    "setup_logging",
    "RequestLogger",
    "get_request_logger",
    "DependencyUnavailableError",
    "wait_until_ready",
    "http_probe",
    "apply_security_headers",
    "sanitize_input",
    "sanitize_fields",
    "sanitize_items",
    "mask_error_message",
]

__version__ = "1.0.0"
