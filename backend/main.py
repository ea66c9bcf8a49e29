"""
Backend Service - Main Application
Internal product service behind the gateway
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.config import CORS_METHODS, BackendSettings, get_settings
from backend.routes import health, products
from backend.utils.database import ProductDatabase
from shared.middleware import (
    BodySizeLimitStage,
    PipelineMiddleware,
    RequestLoggingStage,
    SanitizerStage,
    SecurityHeadersStage,
)
from shared.utils.logger import setup_logging
from shared.utils.readiness import wait_until_ready
from shared.utils.security import apply_security_headers

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[BackendSettings] = None,
    database: Optional[ProductDatabase] = None
) -> FastAPI:
    """
    Build the backend application

    Args:
        settings: Backend settings, read from the environment when omitted
        database: Product store, built from settings when omitted
    """
    settings = settings or get_settings()
    setup_logging("backend", settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan events"""
        logger.info("Starting Backend Service", port=settings.port, environment=settings.environment)
        db: ProductDatabase = app.state.db

        if settings.wait_for_database:
            # no attempt budget: the store may take a while on first boot
            await wait_until_ready("database", db.ping, interval=settings.readiness_interval)

        await db.initialize()
        logger.info("Database connection initialized")

        yield

        await db.close()
        logger.info("Backend Service shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.db = database or ProductDatabase(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
    )

    app.add_middleware(
        PipelineMiddleware,
        stages=[
            SecurityHeadersStage(),
            BodySizeLimitStage(settings.max_body_bytes),
            SanitizerStage(),
            RequestLoggingStage(),
        ]
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Reject invalid payloads with a client error"""
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"]
            }
            for error in exc.errors()
        ]
        logger.warning("Request validation failed", path=request.url.path, errors=len(details))
        return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})

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
        apply_security_headers(response.headers)
        return response

    # Register routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(products.router, prefix="/api/products", tags=["Products"])

    return app


app = create_app()


def run() -> None:
    """Run the backend under uvicorn"""
    settings = get_settings()
    uvicorn.run(
        "backend.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        server_header=False
    )


if __name__ == "__main__":
    run()
