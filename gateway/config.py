"""
Gateway configuration
Environment-based settings for the listener, the backend target and the proxy limits
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "production")


class GatewaySettings(BaseSettings):
    # App config
    app_name: str = "Product Gateway"
    environment: str = "development"
    log_level: str = "INFO"

    # Listener
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 5921

    # Backend target
    backend_url: str = "http://backend:3847"
    request_timeout: float = 30.0
    max_response_bytes: int = 10 * 1024 * 1024
    max_forward_bytes: int = 10 * 1024 * 1024

    # Inbound limits
    max_body_bytes: int = 10 * 1024

    # Readiness gate
    wait_for_backend: bool = True
    readiness_interval: float = 1.0
    readiness_max_attempts: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        v = v.lower()
        if v not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {', '.join(ENVIRONMENTS)}")
        return v

    @field_validator("gateway_port")
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def backend_health_url(self) -> str:
        return f"{self.backend_url}/api/health"


_settings: Optional[GatewaySettings] = None


def get_settings() -> GatewaySettings:
    """Get gateway configuration instance"""
    global _settings
    if _settings is None:
        _settings = GatewaySettings()
    return _settings
