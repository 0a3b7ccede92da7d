"""
Shared configuration management for the Tasks service.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MIN_CACHE_TTL_SECONDS = 60
DEFAULT_CACHE_TTL_SECONDS = 60


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/tasks")
    store_backend: str = Field(default="memory", pattern="^(memory|postgres)$")

    # Read-through cache
    cache_enabled: bool = Field(default=True)
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS)
    cache_namespace: str = Field(default="tasks:cache", min_length=1)

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _floor_cache_ttl(cls, value: int) -> int:
        # The key-value store rejects expirations below one minute.
        return max(MIN_CACHE_TTL_SECONDS, value)


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
