"""
Application Configuration Objects
=================================

Structured configuration objects using dataclasses for the VAPI library.
Loaded from the environment (``AppConfig.from_env``) or from a YAML document
with ``${VAR}`` expansion (``AppConfig.from_yaml``); both paths apply the same
defaults for missing values.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .settings import (
    DEFAULT_EVENTS_BACKEND,
    DEFAULT_REDIS_DB,
    DEFAULT_REDIS_HOST,
    DEFAULT_REDIS_PORT,
    DEFAULT_TUNNEL_PORT,
    DEFAULT_TUNNEL_PROVIDER,
    DEFAULT_VAPI_BASE_URL,
    DEFAULT_VAPI_TIMEOUT_SECONDS,
    DEFAULT_WEBHOOK_HOST,
    DEFAULT_WORKERS_COUNT,
    DEFAULT_WORKERS_QUEUE_SIZE,
    DEFAULT_WORKERS_RETRY_ATTEMPTS,
    DEFAULT_WORKERS_RETRY_DELAY_SECONDS,
    env_bool,
    env_duration,
    env_int,
    parse_duration,
)

_ENV_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env(text: str) -> str:
    """Replace ``$VAR`` and ``${VAR}`` with environment values; unset variables expand to ''."""
    return _ENV_VAR_RE.sub(
        lambda m: os.environ.get(m.group(1) or m.group(2), ""), text
    )


@dataclass
class VapiConfig:
    """Remote VAPI API access."""

    api_token: str = ""
    base_url: str = DEFAULT_VAPI_BASE_URL
    timeout: float = DEFAULT_VAPI_TIMEOUT_SECONDS
    debug_dir: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_token_set": bool(self.api_token),
            "base_url": self.base_url,
            "timeout": self.timeout,
            "debug_dir": self.debug_dir,
        }


@dataclass
class TunnelConfig:
    """Webhook exposure: the local port the receiver listens on plus tunnel hints."""

    provider: str = DEFAULT_TUNNEL_PROVIDER
    auth_token: str = ""
    port: int = DEFAULT_TUNNEL_PORT
    subdomain: str = ""
    host: str = DEFAULT_WEBHOOK_HOST

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "auth_token_set": bool(self.auth_token),
            "port": self.port,
            "subdomain": self.subdomain,
            "host": self.host,
        }


@dataclass
class RedisConfig:
    host: str = DEFAULT_REDIS_HOST
    port: int = DEFAULT_REDIS_PORT
    db: int = DEFAULT_REDIS_DB
    password: str = ""
    ssl: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "password_set": bool(self.password),
            "ssl": self.ssl,
        }


@dataclass
class EventsConfig:
    backend: str = DEFAULT_EVENTS_BACKEND
    redis: RedisConfig = field(default_factory=RedisConfig)

    def to_dict(self) -> Dict[str, Any]:
        return {"backend": self.backend, "redis": self.redis.to_dict()}


@dataclass
class WorkersConfig:
    """Bounded handler dispatch: worker count, queue bound and retry policy."""

    count: int = DEFAULT_WORKERS_COUNT
    queue_size: int = DEFAULT_WORKERS_QUEUE_SIZE
    retry_attempts: int = DEFAULT_WORKERS_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_WORKERS_RETRY_DELAY_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "queue_size": self.queue_size,
            "retry_attempts": self.retry_attempts,
            "retry_delay": self.retry_delay,
        }


@dataclass
class AppConfig:
    """Complete library configuration."""

    vapi: VapiConfig = field(default_factory=VapiConfig)
    tunnel: TunnelConfig = field(default_factory=TunnelConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    workers: WorkersConfig = field(default_factory=WorkersConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization (secrets redacted)."""
        return {
            "vapi": self.vapi.to_dict(),
            "tunnel": self.tunnel.to_dict(),
            "events": self.events.to_dict(),
            "workers": self.workers.to_dict(),
        }

    def apply_defaults(self) -> "AppConfig":
        """Fill empty or zero values with defaults. ``retry_attempts`` of 0 is kept."""
        if not self.vapi.base_url:
            self.vapi.base_url = DEFAULT_VAPI_BASE_URL
        if not self.vapi.timeout:
            self.vapi.timeout = DEFAULT_VAPI_TIMEOUT_SECONDS
        if not self.tunnel.provider:
            self.tunnel.provider = DEFAULT_TUNNEL_PROVIDER
        if not self.tunnel.port:
            self.tunnel.port = DEFAULT_TUNNEL_PORT
        if not self.tunnel.host:
            self.tunnel.host = DEFAULT_WEBHOOK_HOST
        if not self.events.backend:
            self.events.backend = DEFAULT_EVENTS_BACKEND
        if not self.events.redis.host:
            self.events.redis.host = DEFAULT_REDIS_HOST
        if not self.events.redis.port:
            self.events.redis.port = DEFAULT_REDIS_PORT
        if not self.workers.count:
            self.workers.count = DEFAULT_WORKERS_COUNT
        if not self.workers.queue_size:
            self.workers.queue_size = DEFAULT_WORKERS_QUEUE_SIZE
        if self.workers.retry_attempts is None:
            self.workers.retry_attempts = DEFAULT_WORKERS_RETRY_ATTEMPTS
        if not self.workers.retry_delay:
            self.workers.retry_delay = DEFAULT_WORKERS_RETRY_DELAY_SECONDS
        return self

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from environment variables."""
        config = cls(
            vapi=VapiConfig(
                api_token=os.getenv("VAPI_API_TOKEN", ""),
                base_url=os.getenv("VAPI_BASE_URL", DEFAULT_VAPI_BASE_URL),
                timeout=env_duration("VAPI_TIMEOUT", DEFAULT_VAPI_TIMEOUT_SECONDS),
                debug_dir=os.getenv("VAPI_DEBUG_DIR") or None,
            ),
            tunnel=TunnelConfig(
                provider=os.getenv("TUNNEL_PROVIDER", DEFAULT_TUNNEL_PROVIDER),
                auth_token=os.getenv("NGROK_AUTH_TOKEN", ""),
                port=env_int("TUNNEL_PORT", DEFAULT_TUNNEL_PORT),
                subdomain=os.getenv("TUNNEL_SUBDOMAIN", ""),
                host=os.getenv("WEBHOOK_HOST", DEFAULT_WEBHOOK_HOST),
            ),
            events=EventsConfig(
                backend=os.getenv("EVENTS_BACKEND", DEFAULT_EVENTS_BACKEND),
                redis=RedisConfig(
                    host=os.getenv("REDIS_HOST", DEFAULT_REDIS_HOST),
                    port=env_int("REDIS_PORT", DEFAULT_REDIS_PORT),
                    db=env_int("REDIS_DB", DEFAULT_REDIS_DB),
                    password=os.getenv("REDIS_PASSWORD", ""),
                    ssl=env_bool("REDIS_SSL", False),
                ),
            ),
            workers=WorkersConfig(
                count=env_int("WORKERS_COUNT", DEFAULT_WORKERS_COUNT),
                queue_size=env_int("WORKERS_QUEUE_SIZE", DEFAULT_WORKERS_QUEUE_SIZE),
                retry_attempts=env_int(
                    "WORKERS_RETRY_ATTEMPTS", DEFAULT_WORKERS_RETRY_ATTEMPTS
                ),
                retry_delay=env_duration(
                    "WORKERS_RETRY_DELAY", DEFAULT_WORKERS_RETRY_DELAY_SECONDS
                ),
            ),
        )
        return config.apply_defaults()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AppConfig":
        """Build configuration from a nested mapping shaped like the YAML file."""
        data = data or {}
        vapi = data.get("vapi") or {}
        tunnel = data.get("tunnel") or {}
        events = data.get("events") or {}
        redis_section = events.get("redis") or {}
        workers = data.get("workers") or {}

        config = cls(
            vapi=VapiConfig(
                api_token=str(vapi.get("api_token") or ""),
                base_url=str(vapi.get("base_url") or ""),
                timeout=parse_duration(vapi.get("timeout")) or 0.0,
                debug_dir=vapi.get("debug_dir") or None,
            ),
            tunnel=TunnelConfig(
                provider=str(tunnel.get("provider") or ""),
                auth_token=str(tunnel.get("auth_token") or ""),
                port=int(tunnel.get("port") or 0),
                subdomain=str(tunnel.get("subdomain") or ""),
                host=str(tunnel.get("host") or ""),
            ),
            events=EventsConfig(
                backend=str(events.get("backend") or ""),
                redis=RedisConfig(
                    host=str(redis_section.get("host") or ""),
                    port=int(redis_section.get("port") or 0),
                    db=int(redis_section.get("db") or 0),
                    password=str(redis_section.get("password") or ""),
                    ssl=bool(redis_section.get("ssl", False)),
                ),
            ),
            workers=WorkersConfig(
                count=int(workers.get("count") or 0),
                queue_size=int(workers.get("queue_size") or 0),
                retry_attempts=(
                    int(workers["retry_attempts"])
                    if workers.get("retry_attempts") is not None
                    else None
                ),
                retry_delay=parse_duration(workers.get("retry_delay")) or 0.0,
            ),
        )
        return config.apply_defaults()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AppConfig":
        """
        Load configuration from a YAML file.

        Environment references (``$VAR`` / ``${VAR}``) are expanded in the raw
        text before parsing.

        :param path: Path to the YAML document.
        :return: Populated configuration with defaults applied.
        :raises OSError: When the file cannot be read.
        :raises ValueError: When the document is not a YAML mapping.
        """
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(expand_env(text))
        except yaml.YAMLError as exc:
            raise ValueError(f"failed to parse config file {path}: {exc}") from exc
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"config file {path} must contain a mapping")
        return cls.from_dict(data)
