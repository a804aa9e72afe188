"""
Configuration Package
=====================

Centralized configuration management for the VAPI library.

Usage:
    from vapi.config import AppConfig

    config = AppConfig.from_env()
    config = AppConfig.from_yaml("config.yaml")
"""

from .app_config import (
    AppConfig,
    EventsConfig,
    RedisConfig,
    TunnelConfig,
    VapiConfig,
    WorkersConfig,
    expand_env,
)
from .settings import (
    DEFAULT_STREAM_BUFFER_SIZE,
    DEFAULT_VAPI_BASE_URL,
    EVENT_CHANNEL_PREFIX,
    parse_duration,
)

__all__ = [
    "AppConfig",
    "EventsConfig",
    "RedisConfig",
    "TunnelConfig",
    "VapiConfig",
    "WorkersConfig",
    "expand_env",
    "DEFAULT_STREAM_BUFFER_SIZE",
    "DEFAULT_VAPI_BASE_URL",
    "EVENT_CHANNEL_PREFIX",
    "parse_duration",
]
