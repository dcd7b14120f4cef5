"""Configuration for httpchain (pydantic-settings, HTTPCHAIN_ env prefix)."""

from .settings import (
    CacheSettings,
    HttpchainSettings,
    LoggingSettings,
    RetrySettings,
    TransportSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "HttpchainSettings",
    "RetrySettings",
    "CacheSettings",
    "TransportSettings",
    "LoggingSettings",
    "get_settings",
    "clear_settings_cache",
]
