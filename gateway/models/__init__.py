"""
Data models for the gateway
"""

from .proxy import OutcomeKind, ProxyOutcome, FORWARDED_RESPONSE_HEADERS

__all__ = [
    "OutcomeKind",
    "ProxyOutcome",
    "FORWARDED_RESPONSE_HEADERS"
]
