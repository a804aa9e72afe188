from typing import Any, Optional

import redis.asyncio as redis
from opentelemetry import trace
from opentelemetry.trace import SpanKind
from redis.exceptions import RedisError

from utils.ml_logging import get_logger
from vapi.config import RedisConfig
from vapi.enums.monitoring import SpanAttr
from vapi.exceptions import BrokerConnectionError, BrokerError


class RedisManager:
    """
    RedisManager wraps an asyncio Redis client for the event bus: connectivity
    checks, channel publishes and pub/sub handles, each traced as a client span.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        db: int = 0,
        password: Optional[str] = None,
        ssl: bool = False,
        client: Optional[Any] = None,
    ):
        self.logger = get_logger(__name__)
        self.tracer = trace.get_tracer(__name__)
        self.host = host or "localhost"
        self.port = int(port or 6379)
        self.db = db

        if ":" in self.host:
            self.host, host_port = self.host.rsplit(":", 1)
            if host_port.isdigit():
                self.port = int(host_port)

        self.redis_client = client or redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=password or None,
            ssl=ssl,
            decode_responses=True,
        )
        self.logger.debug(f"Redis client created for {self.host}:{self.port}/{self.db}")

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisManager":
        return cls(
            host=config.host,
            port=config.port,
            db=config.db,
            password=config.password,
            ssl=config.ssl,
        )

    def _redis_span(self, name: str, op: Optional[str] = None, **attributes: Any):
        return self.tracer.start_as_current_span(
            name,
            kind=SpanKind.CLIENT,
            attributes={
                SpanAttr.PEER_SERVICE.value: "redis",
                SpanAttr.NET_PEER_NAME.value: self.host,
                SpanAttr.NET_PEER_PORT.value: self.port,
                SpanAttr.DB_SYSTEM.value: "redis",
                **({SpanAttr.DB_OPERATION.value: op} if op else {}),
                **attributes,
            },
        )

    async def initialize(self) -> None:
        """
        Validate Redis connectivity.

        :raises BrokerConnectionError: When the server does not answer PING.
        """
        self.logger.info(f"Validating Redis connection to {self.host}:{self.port}")
        try:
            ok = await self.ping()
        except BrokerError as exc:
            raise BrokerConnectionError(f"Failed to initialize Redis: {exc}") from exc
        if not ok:
            raise BrokerConnectionError("Redis health check failed")
        self.logger.info("Redis connection validated successfully")

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        with self._redis_span("Redis.PING", "PING"):
            try:
                return bool(await self.redis_client.ping())
            except (RedisError, OSError) as exc:
                self.logger.error(f"Redis PING failed: {exc}")
                raise BrokerError(f"redis ping failed: {exc}") from exc

    async def publish(self, channel: str, message: str) -> int:
        """
        Publish a message on a channel.

        :param channel: Redis channel name.
        :param message: Encoded payload.
        :return: Number of subscribers that received the message.
        :raises BrokerError: On any Redis or socket failure.
        """
        with self._redis_span(
            "Redis.PUBLISH", "PUBLISH", **{SpanAttr.EVENT_CHANNEL.value: channel}
        ):
            try:
                return await self.redis_client.publish(channel, message)
            except (RedisError, OSError) as exc:
                raise BrokerError(f"failed to publish to {channel}: {exc}") from exc

    def pubsub(self):
        """Return a new pub/sub handle bound to this client."""
        return self.redis_client.pubsub()

    async def close(self) -> None:
        with self._redis_span("Redis.CLOSE"):
            try:
                await self.redis_client.aclose()
            except (RedisError, OSError) as exc:
                self.logger.warning(f"Error closing Redis client: {exc}")
