from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

import vapi.redis.manager as redis_manager
from vapi.chat.client import ChatClient
from vapi.config import AppConfig
from vapi.events.bus import RedisEventBus
from vapi.exceptions import LifecycleError, TransportError, UnsupportedBackendError
from vapi.library import LifecycleState, VapiLibrary
from vapi.voice.service import VoiceService


def _library():
    bus = MagicMock()
    bus.start = AsyncMock()
    bus.stop = AsyncMock()
    voice = MagicMock()
    voice.start = AsyncMock()
    voice.stop = AsyncMock()
    voice.aclose = AsyncMock()
    chat = MagicMock()
    chat.aclose = AsyncMock()
    return VapiLibrary(AppConfig(), bus, chat, voice), bus, voice, chat


def _local_config() -> AppConfig:
    config = AppConfig()
    config.vapi.api_token = "token-123"
    config.tunnel.host = "127.0.0.1"
    config.tunnel.port = 0
    return config


class TestCreate:
    @pytest.mark.asyncio
    async def test_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            await VapiLibrary.create(None)

    @pytest.mark.asyncio
    async def test_unknown_backend(self):
        config = _local_config()
        config.events.backend = "kafka"

        with pytest.raises(UnsupportedBackendError):
            await VapiLibrary.create(config)

    @pytest.mark.asyncio
    async def test_builds_components(self, monkeypatch, fake_redis):
        monkeypatch.setattr(redis_manager.redis, "Redis", lambda **kwargs: fake_redis)

        library = await VapiLibrary.create(_local_config())
        try:
            assert isinstance(library.event_bus, RedisEventBus)
            assert isinstance(library.chat, ChatClient)
            assert isinstance(library.voice, VoiceService)
            assert library.chat.get_config().api_token == "token-123"
            assert library.state is LifecycleState.STOPPED
        finally:
            await library.aclose()

        assert fake_redis.closed


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop_order(self):
        library, bus, voice, _ = _library()
        calls = []
        bus.start.side_effect = lambda: calls.append("bus.start")
        voice.start.side_effect = lambda: calls.append("voice.start")
        voice.stop.side_effect = lambda: calls.append("voice.stop")
        bus.stop.side_effect = lambda: calls.append("bus.stop")

        await library.start()
        assert library.is_running
        await library.stop()

        assert calls == ["bus.start", "voice.start", "voice.stop", "bus.stop"]
        assert library.state is LifecycleState.STOPPED

    @pytest.mark.asyncio
    async def test_double_start_rejected(self):
        library, bus, _, _ = _library()
        await library.start()

        with pytest.raises(LifecycleError, match="library is already running"):
            await library.start()

        bus.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_before_start_rejected(self):
        library, _, _, _ = _library()

        with pytest.raises(LifecycleError, match="library is not running"):
            await library.stop()

    @pytest.mark.asyncio
    @patch("vapi.library.logger")
    async def test_failed_voice_start_stops_bus(self, mock_logger):
        library, bus, voice, _ = _library()
        voice.start.side_effect = TransportError("port in use")

        with pytest.raises(TransportError):
            await library.start()

        bus.stop.assert_awaited_once()
        assert library.state is LifecycleState.STOPPED
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_can_restart_after_stop(self):
        library, bus, _, chat = _library()

        await library.start()
        await library.stop()
        await library.start()

        assert library.is_running
        assert bus.start.await_count == 2
        chat.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_manager_releases_everything(self):
        library, bus, voice, chat = _library()

        async with library as running:
            assert running.is_running

        voice.stop.assert_awaited_once()
        bus.stop.assert_awaited_once()
        voice.aclose.assert_awaited_once()
        chat.aclose.assert_awaited_once()
        assert library.state is LifecycleState.STOPPED

    @pytest.mark.asyncio
    async def test_aclose_when_stopped_releases_broker(self):
        library, bus, voice, chat = _library()

        await library.aclose()

        bus.stop.assert_awaited_once()
        voice.stop.assert_not_awaited()
        chat.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_running_library_serves_webhooks(monkeypatch, fake_redis):
    monkeypatch.setattr(redis_manager.redis, "Redis", lambda **kwargs: fake_redis)
    library = await VapiLibrary.create(_local_config())

    async with library:
        port = library.voice.webhook_server.port
        assert port != 0
        async with httpx.AsyncClient() as client:
            response = await client.get(f"http://127.0.0.1:{port}/webhooks/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert not library.voice.webhook_server.is_running
