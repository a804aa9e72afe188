"""
VAPI Events
===========

Client library for the VAPI voice and chat APIs with a Redis-backed event
bus and a webhook receiver for end-of-call processing.
"""

__version__ = "0.1.0"

from .config import AppConfig  # noqa: E402
from .events import Event, EventSources, EventTypes, create_event_bus  # noqa: E402
from .exceptions import VapiError  # noqa: E402
from .library import LifecycleState, VapiLibrary  # noqa: E402

__all__ = [
    "__version__",
    "AppConfig",
    "Event",
    "EventSources",
    "EventTypes",
    "create_event_bus",
    "VapiError",
    "LifecycleState",
    "VapiLibrary",
]
