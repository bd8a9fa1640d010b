"""
Shared configuration management for the Text Analysis Service.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Every field can be overridden with a ``TEXTS_``-prefixed environment
    variable (``TEXTS_REDIS_URL``, ``TEXTS_JWT_SECRET``...) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TEXTS_",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Key-value store
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_timeout_seconds: float = Field(default=2.0, gt=0)

    # Persistence
    persistence_backend: Literal["postgres", "memory"] = Field(default="postgres")
    postgres_dsn: str = Field(default="postgres://localhost:5432/texts")

    # Security
    jwt_secret: str = Field(default="default-secret")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiry_hours: int = Field(default=24, ge=1)
    password_hash_iterations: int = Field(default=390000, ge=1)

    # Caching
    analysis_cache_ttl: int = Field(default=3600, ge=1)
    text_list_cache_ttl: int = Field(default=3600, ge=1)

    # Rate limiting
    rate_limiting_enabled: bool = Field(default=True)
    rate_limits_file: Optional[str] = Field(default=None)
    # Only behind a proxy that overwrites X-Forwarded-For and X-Real-IP
    trust_forwarded_for: bool = Field(default=False)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
