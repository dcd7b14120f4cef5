"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from httpchain.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.default_expiry
    86400.0
    >>> settings.transport.upload_chunk_size
    1048576

    # Or with environment variables:
    # HTTPCHAIN_RETRY_MAX_RETRIES=3
    # HTTPCHAIN_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import (
    ByteSize,
    Field,
    NonNegativeFloat,
    PositiveFloat,
    PositiveInt,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseSettings):
    """Default retry configuration for RetryLoader."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPCHAIN_RETRY_",
        extra="ignore",
    )

    max_retries: Annotated[int, Field(ge=0, le=255)] = 1
    backoff: bool = Field(default=False, description="Sleep between resubmissions")
    base_delay: NonNegativeFloat = Field(default=0.5, description="Base delay in seconds")
    max_delay: PositiveFloat = Field(default=10.0, description="Maximum delay in seconds")
    jitter: bool = True


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPCHAIN_CACHE_",
        extra="ignore",
    )

    default_expiry: PositiveFloat = Field(
        default=86400.0,
        description="Lifetime in seconds of entries cached without an explicit expiry",
    )
    max_entries: PositiveInt = Field(default=1000, description="Max in-memory cache entries")


class TransportSettings(BaseSettings):
    """HTTP transport defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPCHAIN_TRANSPORT_",
        extra="ignore",
    )

    timeout: PositiveFloat = Field(default=30.0, description="Default request timeout")
    follow_redirects: bool = True
    max_redirects: PositiveInt = Field(default=10)
    verify_ssl: bool = True
    user_agent: str = "httpchain/1.0"
    upload_chunk_size: ByteSize = Field(
        default=ByteSize(1024 * 1024),
        description="Chunk size used when streaming multipart file parts",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPCHAIN_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"
    redact_headers: frozenset[str] = frozenset({"authorization", "cookie", "proxy-authorization"})

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("redact_headers", mode="before")
    @classmethod
    def _lower_headers(cls, v: frozenset[str] | set[str] | list[str]) -> frozenset[str]:
        """Header names compare lowercase."""
        return frozenset(h.strip().lower() for h in v)


class HttpchainSettings(BaseSettings):
    """Root settings for httpchain.

    Loads configuration from environment variables with HTTPCHAIN_ prefix.

    Example environment variables:
        HTTPCHAIN_DEBUG=true
        HTTPCHAIN_RETRY_MAX_RETRIES=3
        HTTPCHAIN_CACHE_DEFAULT_EXPIRY=3600
        HTTPCHAIN_TRANSPORT_TIMEOUT=60
        HTTPCHAIN_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="HTTPCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable request/response tracing")

    retry: RetrySettings = Field(default_factory=RetrySettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @computed_field
    @property
    def upload_chunk_bytes(self) -> int:
        """Multipart streaming chunk size as integer bytes."""
        return int(self.transport.upload_chunk_size)


@lru_cache(maxsize=1)
def get_settings() -> HttpchainSettings:
    """Get the global settings instance (cached)."""
    return HttpchainSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
