"""
Environment Settings
====================

Environment variable names, defaults and small parsing helpers for the VAPI
library. Values read here at import time are process-wide defaults; use
``AppConfig.from_env()`` to re-read the environment explicitly.
"""

import os
import re
from typing import Optional, Union

# ==============================================================================
# VAPI API
# ==============================================================================

DEFAULT_VAPI_BASE_URL = "https://api.vapi.ai"
DEFAULT_VAPI_TIMEOUT_SECONDS = 30.0

# ==============================================================================
# WEBHOOK SERVER / TUNNEL
# ==============================================================================

DEFAULT_TUNNEL_PROVIDER = "ngrok"
DEFAULT_TUNNEL_PORT = 8080
DEFAULT_WEBHOOK_HOST = "0.0.0.0"

# ==============================================================================
# EVENT BUS / REDIS
# ==============================================================================

DEFAULT_EVENTS_BACKEND = "redis"
DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0

EVENT_CHANNEL_PREFIX = "events:"

# ==============================================================================
# HANDLER WORKERS
# ==============================================================================

DEFAULT_WORKERS_COUNT = 3
DEFAULT_WORKERS_QUEUE_SIZE = 100
DEFAULT_WORKERS_RETRY_ATTEMPTS = 3
DEFAULT_WORKERS_RETRY_DELAY_SECONDS = 5.0

# ==============================================================================
# CHAT STREAMING
# ==============================================================================

DEFAULT_STREAM_BUFFER_SIZE = int(os.getenv("VAPI_STREAM_BUFFER_SIZE", "100"))

_TRUTHY = ("true", "1", "yes", "on")
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def parse_duration(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Parse a duration into seconds.

    Accepts bare numbers (seconds) and strings with an ``ms``/``s``/``m``/``h``
    suffix, e.g. ``"30s"``, ``"500ms"``, ``"1m"``.

    :param value: Raw value from the environment or a YAML document.
    :return: Seconds as float, or None when value is empty.
    :raises ValueError: When the value is not a recognizable duration.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if value.strip() == "":
        return None
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[(unit or "s").lower()]


def env_duration(name: str, default: float) -> float:
    parsed = parse_duration(os.getenv(name))
    return default if parsed is None else parsed
