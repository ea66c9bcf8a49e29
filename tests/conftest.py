"""
Pytest fixtures for gateway and backend tests
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from backend.config import BackendSettings
from backend.main import create_app as create_backend_app
from backend.models.product import Product
from gateway.config import GatewaySettings
from gateway.main import create_app as create_gateway_app
from shared.middleware.pipeline import RequestContext

BACKEND_URL = "http://backend.test:3847"


class UpstreamBackend:
    """Stand-in for the backend service, served through httpx.MockTransport"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], Any] = self.default_handler

    @staticmethod
    def default_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": True})

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def upstream() -> UpstreamBackend:
    """Recording backend double"""
    return UpstreamBackend()


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    """Gateway settings pointing at the backend double"""
    return GatewaySettings(
        backend_url=BACKEND_URL,
        environment="development",
        wait_for_backend=False,
        readiness_interval=0,
    )


@pytest.fixture
def gateway_client(upstream, gateway_settings) -> TestClient:
    """Gateway test client wired to the backend double"""
    app = create_gateway_app(gateway_settings, transport=upstream.transport)
    return TestClient(app)


@pytest.fixture
def context_factory() -> Callable[..., RequestContext]:
    """Build request contexts without running a server"""

    def make_context(
        method: str = "GET",
        path: str = "/api/products",
        query_string: str = "",
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        client_host: str = "10.0.0.7",
    ) -> RequestContext:
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        raw_headers.append((b"host", b"gateway.example.com:5921"))
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "https",
            "path": path,
            "raw_path": path.encode("latin-1"),
            "root_path": "",
            "query_string": query_string.encode("latin-1"),
            "headers": raw_headers,
            "client": (client_host, 50000),
            "server": ("gateway.example.com", 5921),
        }
        context = RequestContext.from_request(Request(scope))
        context.raw_body = body
        context.body_read = True
        return context

    return make_context


@pytest.fixture
def sample_product() -> Product:
    """Stored product as returned by the database layer"""
    return Product(
        id=1,
        name="Laptop",
        price=999.99,
        description=None,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def mock_db(sample_product):
    """Mock product database"""
    db = MagicMock()
    db.ping = AsyncMock(return_value=True)
    db.initialize = AsyncMock()
    db.close = AsyncMock()
    db.create_product = AsyncMock(return_value=sample_product)
    db.list_products = AsyncMock(return_value=[sample_product])
    return db


@pytest.fixture
def backend_settings() -> BackendSettings:
    """Backend settings for development mode without a store"""
    return BackendSettings(
        environment="development",
        wait_for_database=False,
        readiness_interval=0,
    )


@pytest.fixture
def backend_client(mock_db, backend_settings) -> TestClient:
    """Backend test client over a mocked database"""
    app = create_backend_app(backend_settings, database=mock_db)
    return TestClient(app)


@pytest.fixture
def mock_db_pool():
    """Mock asyncpg database pool"""
    pool = MagicMock()
    conn = AsyncMock()

    # Configure connection context manager
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)

    return pool, conn
