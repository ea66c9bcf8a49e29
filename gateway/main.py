"""
Gateway Service - Main Application
Single external entry point; hardens, sanitizes and forwards /api/* to the backend
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.config import GatewaySettings, get_settings
from gateway.routes import health, proxy
from gateway.utils.backend_client import BackendClient
from shared.middleware import (
    BodySizeLimitStage,
    PipelineMiddleware,
    RequestLoggingStage,
    SanitizerStage,
    SecurityHeadersStage,
)
from shared.utils.logger import setup_logging
from shared.utils.readiness import http_probe, wait_until_ready
from shared.utils.security import apply_security_headers

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[GatewaySettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the gateway application

    Args:
        settings: Gateway settings, read from the environment when omitted
        transport: Optional httpx transport used for every backend call
    """
    settings = settings or get_settings()
    setup_logging("gateway", settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan events"""
        logger.info(
            "Starting Gateway Service",
            port=settings.gateway_port,
            backend_url=settings.backend_url,
            environment=settings.environment
        )

        if settings.wait_for_backend:
            await wait_until_ready(
                "backend",
                http_probe(settings.backend_health_url, transport=transport),
                interval=settings.readiness_interval,
                max_attempts=settings.readiness_max_attempts
            )

        yield

        logger.info("Gateway Service shutting down gracefully")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.backend_client = BackendClient(
        settings.backend_url,
        timeout=settings.request_timeout,
        max_request_bytes=settings.max_forward_bytes,
        max_response_bytes=settings.max_response_bytes,
        transport=transport
    )

    app.add_middleware(
        PipelineMiddleware,
        stages=[
            SecurityHeadersStage(hsts=settings.is_production),
            BodySizeLimitStage(settings.max_body_bytes),
            SanitizerStage(),
            RequestLoggingStage(),
        ]
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render framework HTTP errors in the service error format"""
        error = "Not found" if exc.status_code == 404 else exc.detail
        return JSONResponse(status_code=exc.status_code, content={"error": error}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(
            "Unhandled exception",
            status_code=500,
            error=str(exc),
            method=request.method,
            path=request.url.path,
            exc_info=exc if not settings.is_production else False
        )

        response = JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )
        apply_security_headers(response.headers, hsts=settings.is_production)
        return response

    # Register routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(proxy.router, tags=["Proxy"])

    return app


app = create_app()


def run() -> None:
    """Run the gateway under uvicorn"""
    settings = get_settings()
    uvicorn.run(
        "gateway.main:app",
        host=settings.gateway_host,
        port=settings.gateway_port,
        log_level=settings.log_level.lower(),
        server_header=False
    )


if __name__ == "__main__":
    run()
