"""
VAPI Webhook Service Entrypoint
===============================

Runs the library as a standalone process: webhook server plus event bus,
until SIGINT or SIGTERM.

Configuration comes from the YAML file named by ``VAPI_CONFIG_FILE`` when
set, otherwise from environment variables.
"""

import asyncio
import os
import signal
import sys

from utils.ml_logging import get_logger
from utils.telemetry_config import setup_telemetry
from vapi.config import AppConfig
from vapi.exceptions import VapiError
from vapi.library import VapiLibrary

logger = get_logger("vapi.main")


def load_config() -> AppConfig:
    config_file = os.getenv("VAPI_CONFIG_FILE", "")
    if config_file:
        logger.info(f"Loading configuration from {config_file}")
        return AppConfig.from_yaml(config_file)
    return AppConfig.from_env()


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event
) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def run(config: AppConfig) -> None:
    stop_event = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), stop_event)

    library = await VapiLibrary.create(config)
    async with library:
        logger.keyinfo(
            f"Webhook receiver ready on "
            f"{config.tunnel.host}:{library.voice.webhook_server.port}/webhooks/vapi"
        )
        await stop_event.wait()
        logger.info("Shutdown signal received")


def main() -> int:
    setup_telemetry()
    try:
        config = load_config()
        asyncio.run(run(config))
    except (VapiError, ValueError, OSError) as exc:
        logger.error(f"VAPI webhook service failed: {exc}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
