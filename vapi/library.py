"""
VAPI Library
============

Composition root: builds the event bus, the chat client and the voice service
from one ``AppConfig`` and drives their start/stop lifecycle.

Usage:
    config = AppConfig.from_env()
    async with await VapiLibrary.create(config) as library:
        await library.event_bus.subscribe(EventTypes.CALL_COMPLETED, on_call)
        ...
"""

import asyncio
from enum import Enum
from typing import Optional

from opentelemetry import trace

from utils.ml_logging import get_logger
from vapi.chat.client import ChatClient
from vapi.config import AppConfig
from vapi.events.bus import EventBus
from vapi.events.factory import create_event_bus
from vapi.exceptions import LifecycleError
from vapi.voice.service import VoiceService

logger = get_logger("vapi.library")
tracer = trace.get_tracer(__name__)


class LifecycleState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class VapiLibrary:
    """
    Owns the event bus, chat client and voice service for the process lifetime.

    State moves STOPPED -> STARTING -> RUNNING -> STOPPING -> STOPPED; every
    transition happens under one lock. ``stop()`` leaves the HTTP clients open
    so the library can be started again; ``aclose()`` releases everything.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        chat: ChatClient,
        voice: VoiceService,
    ):
        self._config = config
        self._event_bus = event_bus
        self._chat = chat
        self._voice = voice
        self._state = LifecycleState.STOPPED
        self._lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: Optional[AppConfig]) -> "VapiLibrary":
        """
        Build a library from ``config``.

        :param config: Library configuration; defaults are applied to empty values.
        :raises ValueError: When ``config`` is None.
        :raises UnsupportedBackendError: For an unknown events backend.
        :raises BrokerConnectionError: When the broker cannot be reached.
        """
        if config is None:
            raise ValueError("config is required")
        config.apply_defaults()

        event_bus = await create_event_bus(
            config.events.backend, config.events.redis, config.workers
        )
        chat = ChatClient.from_config(config.vapi)
        voice = VoiceService(config, event_bus)
        logger.info(f"VAPI library created: {config.to_dict()}")
        return cls(config, event_bus, chat, voice)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def chat(self) -> ChatClient:
        return self._chat

    @property
    def voice(self) -> VoiceService:
        return self._voice

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LifecycleState.RUNNING

    async def start(self) -> None:
        """
        Start the event bus, then the webhook server.

        :raises LifecycleError: When the library is not stopped.
        """
        async with self._lock:
            if self._state is not LifecycleState.STOPPED:
                raise LifecycleError("library is already running")
            self._state = LifecycleState.STARTING

            with tracer.start_as_current_span("vapi.library.start"):
                try:
                    await self._event_bus.start()
                    await self._voice.start()
                except BaseException:
                    logger.error("VAPI library failed to start; stopping event bus")
                    await self._event_bus.stop()
                    self._state = LifecycleState.STOPPED
                    raise

            self._state = LifecycleState.RUNNING
        logger.keyinfo("VAPI library started")

    async def stop(self) -> None:
        """
        Stop the webhook server, then the event bus.

        :raises LifecycleError: When the library is not running.
        """
        async with self._lock:
            if self._state is not LifecycleState.RUNNING:
                raise LifecycleError("library is not running")
            self._state = LifecycleState.STOPPING

            with tracer.start_as_current_span("vapi.library.stop"):
                try:
                    await self._voice.stop()
                finally:
                    await self._event_bus.stop()
                    self._state = LifecycleState.STOPPED
        logger.keyinfo("VAPI library stopped")

    async def aclose(self) -> None:
        """Stop when running, then release the broker connection and HTTP clients."""
        if self.is_running:
            await self.stop()
        else:
            await self._event_bus.stop()
        try:
            await self._voice.aclose()
        finally:
            await self._chat.aclose()

    async def __aenter__(self) -> "VapiLibrary":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
