from typing import Optional

from utils.ml_logging import get_logger
from vapi.config import RedisConfig, WorkersConfig
from vapi.events.bus import EventBus, RedisEventBus
from vapi.events.dispatcher import HandlerDispatcher
from vapi.exceptions import BrokerConnectionError, UnsupportedBackendError
from vapi.redis.manager import RedisManager

logger = get_logger("vapi.events.factory")

SUPPORTED_BACKENDS = ("redis",)


async def create_event_bus(
    backend: str,
    redis_config: Optional[RedisConfig] = None,
    workers: Optional[WorkersConfig] = None,
) -> EventBus:
    """
    Create and connect an event bus for ``backend``.

    :param backend: Backend name; only ``"redis"`` is supported.
    :param redis_config: Connection settings for the Redis backend.
    :param workers: Handler dispatch settings.
    :return: A connected event bus (not yet started).
    :raises UnsupportedBackendError: For unknown backends.
    :raises BrokerConnectionError: When the broker does not answer.
    """
    if backend != "redis":
        raise UnsupportedBackendError(backend)

    redis_config = redis_config or RedisConfig()
    manager = RedisManager.from_config(redis_config)
    bus = RedisEventBus(manager, HandlerDispatcher.from_config(workers or WorkersConfig()))
    try:
        await bus.initialize()
    except BrokerConnectionError:
        await manager.close()
        raise

    logger.info(
        f"Event bus ready: backend={backend}, redis={redis_config.host}:{redis_config.port}/{redis_config.db}"
    )
    return bus
