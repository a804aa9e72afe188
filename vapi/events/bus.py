"""
Event Bus
=========

Publish/subscribe contract plus the Redis pub/sub implementation.

Delivery is at-most-once and best effort: nothing is persisted, subscribers
that are not listening when an event is published never see it, and handler
order is not guaranteed.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from redis.exceptions import RedisError

from utils.ml_logging import get_logger
from vapi.config import EVENT_CHANNEL_PREFIX
from vapi.enums.monitoring import SpanAttr
from vapi.events.dispatcher import HandlerDispatcher, handler_name
from vapi.events.types import (
    CallProcessedData,
    Event,
    EventSources,
    EventTypes,
    Handler,
)
from vapi.exceptions import BrokerError, EventSerializationError
from vapi.redis.manager import RedisManager

logger = get_logger("vapi.events.bus")
tracer = trace.get_tracer(__name__)


def channel_for(event_type: str) -> str:
    """Broker channel carrying events of ``event_type``."""
    return f"{EVENT_CHANNEL_PREFIX}{event_type}"


class EventBus(ABC):
    """Publish/subscribe contract shared by every backend."""

    @abstractmethod
    async def publish(self, event: Event) -> None:
        ...

    @abstractmethod
    async def subscribe(self, event_type: str, handler: Handler) -> None:
        ...

    @abstractmethod
    async def unsubscribe(self, event_type: str, handler: Handler) -> bool:
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def health(self) -> bool:
        ...

    async def publish_call_processed(
        self, processed_call_id: str, call_id: str, assistant_id: str
    ) -> Event:
        """Publish a ``call-processed`` notification and return the event sent."""
        event = Event.create(
            EventTypes.CALL_PROCESSED,
            EventSources.LIBRARY,
            CallProcessedData(
                processed_call_id=processed_call_id,
                call_id=call_id,
                assistant_id=assistant_id,
            ),
        )
        await self.publish(event)
        return event


class RedisEventBus(EventBus):
    """
    Event bus backed by Redis pub/sub.

    Each event type maps to channel ``events:<type>``. The first subscription
    for a type opens one listener task on that channel; the listener lives
    until ``stop()`` even if every handler is later removed. Handlers survive
    ``stop()`` and ``start()`` reopens their listeners. A listener that ended
    on a broker error is replaced by the next ``subscribe()``.
    """

    def __init__(
        self,
        redis_manager: RedisManager,
        dispatcher: Optional[HandlerDispatcher] = None,
    ):
        self._redis = redis_manager
        self._dispatcher = dispatcher or HandlerDispatcher()
        # Copy-on-write: writers swap in a new tuple under the lock, the
        # listener reads whatever tuple is current without locking.
        self._handlers: Dict[str, Tuple[Handler, ...]] = {}
        self._lock = asyncio.Lock()
        self._listeners: Dict[str, asyncio.Task] = {}
        self._stats = {
            "events_published": 0,
            "events_received": 0,
            "events_malformed": 0,
            "handlers_registered": 0,
        }

    @property
    def dispatcher(self) -> HandlerDispatcher:
        return self._dispatcher

    async def initialize(self) -> None:
        """Ping the broker; raises BrokerConnectionError when unreachable."""
        await self._redis.initialize()

    async def publish(self, event: Event) -> None:
        """
        Serialize and publish an event on its type channel.

        :param event: Event to publish.
        :raises EventSerializationError: When the event cannot be encoded.
        :raises BrokerError: When Redis rejects the publish.
        """
        channel = channel_for(event.type)
        payload = event.to_json()
        with tracer.start_as_current_span(
            "event_bus.publish",
            kind=SpanKind.PRODUCER,
            attributes={
                SpanAttr.EVENT_TYPE.value: event.type,
                SpanAttr.EVENT_ID.value: event.id,
                SpanAttr.EVENT_SOURCE.value: event.source,
                SpanAttr.EVENT_CHANNEL.value: channel,
            },
        ) as span:
            try:
                receivers = await self._redis.publish(channel, payload)
            except BrokerError as exc:
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                logger.error(f"Failed to publish event {event.type} ({event.id}): {exc}")
                raise
        self._stats["events_published"] += 1
        logger.debug(f"Published event {event.type} ({event.id}) to {receivers} subscriber(s)")

    async def subscribe(self, event_type: str, handler: Handler) -> None:
        """
        Register a handler for ``event_type``.

        Opens the channel listener on the first subscription for the type.

        :raises BrokerError: When the Redis SUBSCRIBE fails; the handler is
            not registered in that case.
        """
        await self._dispatcher.start()
        async with self._lock:
            previous = self._handlers.get(event_type, ())
            self._handlers[event_type] = previous + (handler,)

            if not self._has_live_listener(event_type):
                try:
                    await self._open_listener(event_type)
                except BrokerError:
                    self._handlers[event_type] = previous
                    raise

            self._stats["handlers_registered"] += 1

        logger.debug(
            "Registered event handler",
            extra={
                "event_type": event_type,
                "handler_name": handler_name(handler),
                "total_handlers": len(self._handlers[event_type]),
            },
        )

    async def unsubscribe(self, event_type: str, handler: Handler) -> bool:
        """
        Remove a handler. The channel listener keeps running.

        :return: True if the handler was found and removed.
        """
        async with self._lock:
            current = list(self._handlers.get(event_type, ()))
            for index, registered in enumerate(current):
                if registered == handler:
                    del current[index]
                    self._handlers[event_type] = tuple(current)
                    self._stats["handlers_registered"] -= 1
                    return True
        return False

    def handler_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, ()))

    async def start(self) -> None:
        """Start the dispatcher and reopen listeners for types that still have handlers."""
        await self._dispatcher.start()
        async with self._lock:
            for event_type, handlers in self._handlers.items():
                if handlers and not self._has_live_listener(event_type):
                    await self._open_listener(event_type)
        logger.info("Redis event bus started")

    async def stop(self) -> None:
        """Cancel listeners, stop the dispatcher and close the Redis client."""
        listeners = list(self._listeners.values())
        self._listeners.clear()
        for task in listeners:
            task.cancel()
        if listeners:
            await asyncio.gather(*listeners, return_exceptions=True)

        await self._dispatcher.shutdown()
        await self._redis.close()
        logger.info(f"Redis event bus stopped ({len(listeners)} listener(s) cancelled)")

    async def health(self) -> bool:
        try:
            return await self._redis.ping()
        except BrokerError as exc:
            logger.warning(f"Event bus health check failed: {exc}")
            return False

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "listeners": sorted(self._listeners),
            "handlers_by_type": {k: len(v) for k, v in self._handlers.items()},
            "dispatcher": self._dispatcher.get_metrics(),
        }

    def _has_live_listener(self, event_type: str) -> bool:
        task = self._listeners.get(event_type)
        return task is not None and not task.done()

    async def _open_listener(self, event_type: str) -> None:
        # caller holds self._lock
        channel = channel_for(event_type)
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(channel)
        except (RedisError, OSError) as exc:
            raise BrokerError(f"failed to subscribe to {channel}: {exc}") from exc
        self._listeners[event_type] = asyncio.create_task(
            self._listen(event_type, pubsub), name=f"event-listener-{channel}"
        )
        logger.info(f"Listening on channel {channel}")

    async def _listen(self, event_type: str, pubsub: Any) -> None:
        channel = channel_for(event_type)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self._fan_out(event_type, message.get("data"))
        except (RedisError, OSError) as exc:
            logger.error(f"Listener for {channel} stopped: {exc}")
        finally:
            try:
                await pubsub.aclose()
            except (RedisError, OSError) as exc:
                logger.debug(f"Error closing pubsub for {channel}: {exc}")

    async def _fan_out(self, event_type: str, raw: Any) -> None:
        try:
            event = Event.from_json(raw)
        except EventSerializationError as exc:
            self._stats["events_malformed"] += 1
            logger.debug(f"Dropping malformed message on {channel_for(event_type)}: {exc}")
            return

        self._stats["events_received"] += 1
        for handler in self._handlers.get(event_type, ()):
            await self._dispatcher.submit(handler, event)
