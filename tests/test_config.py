"""
Tests for environment-based settings
"""

import pytest
from pydantic import ValidationError

from backend.config import BackendSettings
from gateway import config as gateway_config
from gateway.config import GatewaySettings


class TestGatewaySettings:
    """Test gateway configuration"""

    def test_defaults(self):
        """Test the documented defaults"""
        settings = GatewaySettings()

        assert settings.gateway_port == 5921
        assert settings.backend_url == "http://backend:3847"
        assert settings.request_timeout == 30.0
        assert settings.max_body_bytes == 10240
        assert settings.readiness_max_attempts == 30

    def test_reads_environment(self, monkeypatch):
        """Test values come from environment variables"""
        monkeypatch.setenv("GATEWAY_PORT", "8080")
        monkeypatch.setenv("BACKEND_URL", "http://products.internal:9000/")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("WAIT_FOR_BACKEND", "false")

        settings = GatewaySettings()

        assert settings.gateway_port == 8080
        assert settings.backend_url == "http://products.internal:9000"
        assert settings.backend_health_url == "http://products.internal:9000/api/health"
        assert settings.is_production is True
        assert settings.wait_for_backend is False

    def test_invalid_environment(self):
        """Test unknown environments are rejected"""
        with pytest.raises(ValidationError):
            GatewaySettings(environment="staging")

    def test_invalid_port(self):
        """Test ports outside the valid range are rejected"""
        with pytest.raises(ValidationError):
            GatewaySettings(gateway_port=70000)

    def test_get_settings_is_cached(self, monkeypatch):
        """Test the global settings instance is reused"""
        monkeypatch.setattr(gateway_config, "_settings", None)

        assert gateway_config.get_settings() is gateway_config.get_settings()


class TestBackendSettings:
    """Test backend configuration"""

    def test_development_cors(self):
        """Test development allows every origin without credentials"""
        settings = BackendSettings(environment="development")

        assert settings.cors_origins == ["*"]
        assert settings.cors_allow_credentials is False

    def test_production_cors(self, monkeypatch):
        """Test production only allows the gateway origin"""
        monkeypatch.setenv("GATEWAY_ORIGIN", "https://gateway.example.com")

        settings = BackendSettings(environment="production")

        assert settings.cors_origins == ["https://gateway.example.com"]
        assert settings.cors_allow_credentials is True

    def test_database_config(self, monkeypatch):
        """Test asyncpg connection arguments"""
        monkeypatch.setenv("POSTGRES_HOST", "db.internal")
        monkeypatch.setenv("DB_SERVICE_USER", "products_rw")

        config = BackendSettings().database_config

        assert config["host"] == "db.internal"
        assert config["user"] == "products_rw"
        assert config["port"] == 5432
        assert config["database"] == "products"
