"""
Logging utilities for the product gateway services

Provides centralized structlog configuration and request logging helpers.
"""

import logging
import sys
from typing import Optional

import structlog


def _add_service_name(service_name: str):
    """Build a processor that tags every event with the service name"""

    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def setup_logging(service_name: str, log_level: str = "INFO") -> None:
    """
    Setup structured logging

    Args:
        service_name: Name attached to every log event
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ...)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            _add_service_name(service_name),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class RequestLogger:
    """Logger for HTTP requests and proxied calls"""

    def __init__(self, name: str = "product_gateway.requests"):
        self.logger = structlog.get_logger(name)

    def log_request(self, method: str, path: str, ip_address: Optional[str] = None):
        """Log an inbound request"""
        self.logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=ip_address or "unknown"
        )

    def log_response(self, method: str, path: str, status_code: int, duration_ms: float):
        """Log a completed inbound request"""
        self.logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2)
        )

    def log_proxy(
        self,
        method: str,
        path: str,
        target_url: str,
        status_code: int,
        duration_ms: float,
        outcome: str
    ):
        """Log a proxied call and how it ended"""
        self.logger.info(
            "Proxy request completed",
            method=method,
            path=path,
            target_url=target_url,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            outcome=outcome
        )

    def log_proxy_error(
        self,
        method: str,
        path: str,
        outcome: str,
        error_type: str,
        message: str
    ):
        """Log a failed proxied call. The message must already be masked."""
        self.logger.error(
            "Proxy request failed",
            method=method,
            path=path,
            outcome=outcome,
            error_type=error_type,
            message=message
        )


def get_request_logger() -> RequestLogger:
    """Get request logger instance"""
    return RequestLogger()
