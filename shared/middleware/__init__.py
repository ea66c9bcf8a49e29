"""
Request pipeline components
"""

from .pipeline import BodyKind, BodyTooLargeError, PipelineMiddleware, RequestContext, Stage, get_request_context
from .stages import BodySizeLimitStage, RequestLoggingStage, SanitizerStage, SecurityHeadersStage

__all__ = [
    "BodyKind",
    "BodyTooLargeError",
    "PipelineMiddleware",
    "RequestContext",
    "Stage",
    "get_request_context",
    "SecurityHeadersStage",
    "BodySizeLimitStage",
    "SanitizerStage",
    "RequestLoggingStage",
]
