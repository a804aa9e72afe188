"""
Events Package
==============

Typed events, the pub/sub event bus and the bounded handler dispatcher.

Usage:
    from vapi.events import Event, EventTypes, create_event_bus

    bus = await create_event_bus("redis", config.events.redis, config.workers)
    await bus.subscribe(EventTypes.CALL_COMPLETED, on_call_completed)
    await bus.start()
"""

from .bus import EventBus, RedisEventBus, channel_for
from .dispatcher import HandlerDispatcher, invoke_handler
from .factory import SUPPORTED_BACKENDS, create_event_bus
from .types import (
    PAYLOAD_TYPES,
    CallProcessedData,
    Event,
    EventCallback,
    EventHandler,
    EventSources,
    EventTypes,
    Handler,
    WebhookReceivedData,
    generate_event_id,
    register_payload_type,
)

__all__ = [
    "EventBus",
    "RedisEventBus",
    "channel_for",
    "HandlerDispatcher",
    "invoke_handler",
    "SUPPORTED_BACKENDS",
    "create_event_bus",
    "PAYLOAD_TYPES",
    "CallProcessedData",
    "Event",
    "EventCallback",
    "EventHandler",
    "EventSources",
    "EventTypes",
    "Handler",
    "WebhookReceivedData",
    "generate_event_id",
    "register_payload_type",
]
