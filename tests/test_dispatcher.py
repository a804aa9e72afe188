import asyncio
from unittest.mock import patch

import pytest

from vapi.config import WorkersConfig
from vapi.events.dispatcher import HandlerDispatcher, handler_name, invoke_handler
from vapi.events.types import Event, EventSources
from vapi.exceptions import LifecycleError


def _event() -> Event:
    return Event.create("custom", EventSources.LIBRARY)


class FlakyHandler:
    """Fails ``failures`` times, then succeeds."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def handle(self, event: Event) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"failure {self.calls}")


class TestInvokeHandler:
    @pytest.mark.asyncio
    async def test_sync_callable(self):
        seen = []
        await invoke_handler(lambda event: seen.append(event.type), _event())
        assert seen == ["custom"]

    @pytest.mark.asyncio
    async def test_handler_object(self):
        handler = FlakyHandler(failures=0)
        await invoke_handler(handler, _event())
        assert handler.calls == 1

    def test_handler_name(self):
        async def on_call(event):
            pass

        assert handler_name(on_call) == "on_call"
        assert handler_name(FlakyHandler(0)) == "FlakyHandler"


class TestHandlerDispatcher:
    def test_from_config(self):
        dispatcher = HandlerDispatcher.from_config(
            WorkersConfig(count=5, queue_size=7, retry_attempts=0, retry_delay=1.5)
        )
        assert dispatcher.workers == 5
        assert dispatcher.queue_size == 7
        assert dispatcher.retry_attempts == 0
        assert dispatcher.retry_delay == 1.5

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            HandlerDispatcher(workers=0)

    @pytest.mark.asyncio
    async def test_submit_requires_start(self):
        dispatcher = HandlerDispatcher()
        with pytest.raises(LifecycleError):
            await dispatcher.submit(FlakyHandler(0), _event())

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        dispatcher = HandlerDispatcher(workers=2)
        await dispatcher.start()
        await dispatcher.start()
        try:
            assert dispatcher.get_metrics()["workers"] == 2
        finally:
            await dispatcher.shutdown()

    @pytest.mark.asyncio
    async def test_retries_with_linear_backoff(self):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        dispatcher = HandlerDispatcher(
            workers=1, retry_attempts=3, retry_delay=5.0, sleep=fake_sleep
        )
        handler = FlakyHandler(failures=2)
        await dispatcher.start()
        try:
            await dispatcher.submit(handler, _event())
            await dispatcher.join()
        finally:
            await dispatcher.shutdown()

        assert handler.calls == 3
        assert delays == [5.0, 10.0]
        metrics = dispatcher.get_metrics()
        assert metrics["jobs_completed"] == 1
        assert metrics["retries"] == 2
        assert metrics["jobs_dropped"] == 0

    @pytest.mark.asyncio
    @patch("vapi.events.dispatcher.logger")
    async def test_gives_up_after_last_attempt(self, mock_logger):
        async def fake_sleep(seconds):
            pass

        dispatcher = HandlerDispatcher(workers=1, retry_attempts=2, retry_delay=1.0, sleep=fake_sleep)
        handler = FlakyHandler(failures=10)
        await dispatcher.start()
        try:
            await dispatcher.submit(handler, _event())
            await dispatcher.join()
        finally:
            await dispatcher.shutdown()

        assert handler.calls == 3
        assert dispatcher.get_metrics()["jobs_dropped"] == 1
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_zero_retries_runs_once(self):
        dispatcher = HandlerDispatcher(workers=1, retry_attempts=0)
        handler = FlakyHandler(failures=1)
        await dispatcher.start()
        try:
            await dispatcher.submit(handler, _event())
            await dispatcher.join()
        finally:
            await dispatcher.shutdown()

        assert handler.calls == 1
        assert dispatcher.get_metrics()["jobs_dropped"] == 1

    @pytest.mark.asyncio
    async def test_submit_blocks_when_queue_is_full(self):
        release = asyncio.Event()

        async def slow(event):
            await release.wait()

        dispatcher = HandlerDispatcher(workers=1, queue_size=1, retry_attempts=0)
        await dispatcher.start()
        try:
            await dispatcher.submit(slow, _event())
            # let the worker pick up the first job
            await asyncio.sleep(0.05)
            await dispatcher.submit(slow, _event())

            blocked = asyncio.create_task(dispatcher.submit(slow, _event()))
            await asyncio.sleep(0.05)
            assert not blocked.done()

            release.set()
            await asyncio.wait_for(blocked, timeout=1.0)
            await dispatcher.join()
        finally:
            await dispatcher.shutdown()

        assert dispatcher.get_metrics()["jobs_completed"] == 3

    @pytest.mark.asyncio
    async def test_shutdown_discards_pending_jobs(self):
        release = asyncio.Event()

        async def slow(event):
            await release.wait()

        dispatcher = HandlerDispatcher(workers=1, queue_size=5, retry_attempts=0)
        await dispatcher.start()
        await dispatcher.submit(slow, _event())
        await asyncio.sleep(0.05)
        await dispatcher.submit(slow, _event())
        await dispatcher.submit(slow, _event())

        await dispatcher.shutdown()

        assert dispatcher.is_running is False
        assert dispatcher.pending == 0
        assert dispatcher.get_metrics()["jobs_dropped"] == 2
