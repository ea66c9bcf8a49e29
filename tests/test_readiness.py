"""
Tests for startup readiness gates
"""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.main import create_app as create_backend_app
from gateway.config import GatewaySettings
from gateway.main import create_app as create_gateway_app
from shared.utils.readiness import DependencyUnavailableError, http_probe, wait_until_ready


def counting_probe(results):
    """Probe returning the given results in order, raising exceptions it is handed"""
    remaining = list(results)
    calls = []

    async def probe():
        calls.append(1)
        result = remaining.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    return probe, calls


class TestWaitUntilReady:
    """Test the polling loop"""

    @pytest.mark.asyncio
    async def test_ready_immediately(self):
        """Test a ready dependency needs one attempt"""
        probe, calls = counting_probe([True])

        attempts = await wait_until_ready("backend", probe, interval=0, max_attempts=3)

        assert attempts == 1
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_ready_after_retries(self):
        """Test polling continues until the probe succeeds"""
        probe, calls = counting_probe([False, False, True])

        attempts = await wait_until_ready("backend", probe, interval=0, max_attempts=5)

        assert attempts == 3

    @pytest.mark.asyncio
    async def test_probe_exception_counts_as_not_ready(self):
        """Test a raising probe is retried, not propagated"""
        probe, calls = counting_probe([ConnectionRefusedError("refused"), True])

        attempts = await wait_until_ready("database", probe, interval=0)

        assert attempts == 2

    @pytest.mark.asyncio
    async def test_budget_exhausted(self):
        """Test the error once every attempt failed"""
        probe, calls = counting_probe([False, False, False, True])

        with pytest.raises(DependencyUnavailableError) as exc_info:
            await wait_until_ready("backend", probe, interval=0, max_attempts=3)

        assert exc_info.value.dependency == "backend"
        assert exc_info.value.attempts == 3
        assert len(calls) == 3


class TestHttpProbe:
    """Test the HTTP readiness probe"""

    @pytest.mark.asyncio
    async def test_expected_status(self, upstream):
        """Test a 200 answer is ready"""
        probe = http_probe("http://backend.test:3847/api/health", transport=upstream.transport)

        assert await probe() is True
        assert str(upstream.requests[0].url) == "http://backend.test:3847/api/health"

    @pytest.mark.asyncio
    async def test_unexpected_status(self, upstream):
        """Test any other status is not ready"""
        upstream.handler = lambda request: httpx.Response(503, json={"ok": False})
        probe = http_probe("http://backend.test:3847/api/health", transport=upstream.transport)

        assert await probe() is False

    @pytest.mark.asyncio
    async def test_connection_error(self, upstream):
        """Test an unreachable dependency is not ready"""
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        upstream.handler = refuse
        probe = http_probe("http://backend.test:3847/api/health", transport=upstream.transport)

        assert await probe() is False


class TestGatewayStartup:
    """Test the gateway waits for the backend before serving"""

    def make_settings(self):
        return GatewaySettings(
            backend_url="http://backend.test:3847",
            wait_for_backend=True,
            readiness_interval=0,
            readiness_max_attempts=3,
        )

    def test_starts_once_backend_is_healthy(self, upstream):
        """Test startup polls the backend health route"""
        app = create_gateway_app(self.make_settings(), transport=upstream.transport)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert [request.url.path for request in upstream.requests] == ["/api/health"]

    def test_startup_fails_when_backend_never_ready(self, upstream):
        """Test startup aborts after the attempt budget"""
        upstream.handler = lambda request: httpx.Response(503, json={"ok": False})
        app = create_gateway_app(self.make_settings(), transport=upstream.transport)

        with pytest.raises(DependencyUnavailableError):
            with TestClient(app):
                pass

        assert len(upstream.requests) == 3


class TestBackendStartup:
    """Test the backend waits for its store before serving"""

    def test_waits_for_database(self, mock_db, backend_settings):
        """Test ping is retried, then the store is initialized and closed"""
        backend_settings.wait_for_database = True
        mock_db.ping = AsyncMock(side_effect=[ConnectionRefusedError("refused"), True])
        app = create_backend_app(backend_settings, database=mock_db)

        with TestClient(app) as client:
            assert client.get("/api/health").status_code == 200
            mock_db.initialize.assert_awaited_once()
            mock_db.close.assert_not_awaited()

        assert mock_db.ping.await_count == 2
        mock_db.close.assert_awaited_once()

    def test_skips_wait_when_disabled(self, mock_db, backend_settings):
        """Test the gate can be switched off"""
        app = create_backend_app(backend_settings, database=mock_db)

        with TestClient(app):
            pass

        mock_db.ping.assert_not_awaited()
        mock_db.initialize.assert_awaited_once()
