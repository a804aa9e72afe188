import os

# Keep unit tests free of tracer-provider setup and console exporters.
os.environ.setdefault("DISABLE_CLOUD_TELEMETRY", "true")

import asyncio
from collections import defaultdict

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from vapi.events.bus import RedisEventBus
from vapi.events.dispatcher import HandlerDispatcher
from vapi.redis.manager import RedisManager


class FakePubSub:
    """In-memory stand-in for ``redis.asyncio.client.PubSub``."""

    def __init__(self, broker: "FakeRedis") -> None:
        self.broker = broker
        self.channels = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        if self.broker.fail_subscribe:
            raise RedisConnectionError("subscribe refused")
        for channel in channels:
            self.channels.add(channel)
            self.broker.subscribers[channel].append(self)

    async def listen(self):
        while True:
            item = await self.queue.get()
            if isinstance(item, Exception):
                raise item
            yield item

    async def aclose(self) -> None:
        self.closed = True
        for channel in self.channels:
            if self in self.broker.subscribers[channel]:
                self.broker.subscribers[channel].remove(self)


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` covering pub/sub."""

    def __init__(self) -> None:
        self.subscribers = defaultdict(list)
        self.published = []
        self.pubsubs = []
        self.ping_ok = True
        self.fail_publish = False
        self.fail_subscribe = False
        self.closed = False

    async def ping(self) -> bool:
        if not self.ping_ok:
            raise RedisConnectionError("connection refused")
        return True

    async def publish(self, channel: str, message: str) -> int:
        if self.fail_publish:
            raise RedisConnectionError("connection lost")
        self.published.append((channel, message))
        receivers = list(self.subscribers[channel])
        for pubsub in receivers:
            pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(receivers)

    def drop_connections(self) -> None:
        """Make every open listener fail as if the server closed the socket."""
        for pubsub in self.pubsubs:
            pubsub.queue.put_nowait(RedisConnectionError("connection closed by server"))

    def pubsub(self) -> FakePubSub:
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    async def aclose(self) -> None:
        self.closed = True


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_manager(fake_redis) -> RedisManager:
    return RedisManager(host="localhost", port=6379, client=fake_redis)


@pytest.fixture
async def event_bus(redis_manager):
    dispatcher = HandlerDispatcher(workers=2, queue_size=10, retry_attempts=0, retry_delay=0)
    bus = RedisEventBus(redis_manager, dispatcher)
    await bus.initialize()
    await bus.start()
    yield bus
    await bus.stop()
