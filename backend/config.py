"""
Backend configuration
Environment-based settings for the listener, the product store and CORS
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "production")

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]


class BackendSettings(BaseSettings):
    # App config
    app_name: str = "Product Backend"
    environment: str = "development"
    log_level: str = "INFO"

    # Listener
    host: str = "0.0.0.0"
    port: int = 3847

    # Database - service-specific user pattern
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_db: str = "products"
    db_service_user: str = "backend_service"
    db_service_password: str = "backend_service_secure_pass_change_me"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_command_timeout: float = 30.0

    # Inbound limits
    max_body_bytes: int = 10 * 1024

    # CORS: only the gateway may call us in production
    gateway_origin: str = "http://gateway:5921"

    # Readiness gate
    wait_for_database: bool = True
    readiness_interval: float = 2.0

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

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> List[str]:
        if self.is_production:
            return [self.gateway_origin]
        return ["*"]

    @property
    def cors_allow_credentials(self) -> bool:
        return self.is_production

    @property
    def database_config(self) -> dict:
        """Connection keyword arguments for asyncpg"""
        return {
            "host": self.postgres_host,
            "port": self.postgres_port,
            "database": self.postgres_db,
            "user": self.db_service_user,
            "password": self.db_service_password,
        }


_settings: Optional[BackendSettings] = None


def get_settings() -> BackendSettings:
    """Get backend configuration instance"""
    global _settings
    if _settings is None:
        _settings = BackendSettings()
    return _settings
