"""
Handler Dispatcher
==================

Bounded worker pool that runs event handlers off the broker receive loop.

- ``count`` worker tasks drain a queue holding at most ``queue_size`` jobs.
- ``submit`` waits for a free slot when the queue is full, so a slow set of
  handlers pushes back on the listener instead of growing memory.
- A failing handler is retried ``retry_attempts`` times with a linear backoff
  of ``retry_delay * attempt`` seconds, then logged and dropped. Failures never
  reach the publisher.
"""

import asyncio
import inspect
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from utils.ml_logging import get_logger
from vapi.config import WorkersConfig
from vapi.enums.monitoring import SpanAttr
from vapi.events.types import Event, Handler
from vapi.exceptions import LifecycleError

logger = get_logger("vapi.events.dispatcher")
tracer = trace.get_tracer(__name__)


def handler_name(handler: Handler) -> str:
    return getattr(handler, "__name__", handler.__class__.__name__)


async def invoke_handler(handler: Handler, event: Event) -> None:
    """Call a handler object or plain callable, awaiting it when it is async."""
    target = handler.handle if hasattr(handler, "handle") else handler
    result = target(event)
    if inspect.isawaitable(result):
        await result


@dataclass
class DispatcherMetrics:
    jobs_submitted: int = 0
    jobs_completed: int = 0
    jobs_dropped: int = 0
    retries: int = 0
    last_updated: float = field(default_factory=time.time)


class HandlerDispatcher:
    """Runs ``(handler, event)`` jobs on a fixed set of asyncio workers."""

    def __init__(
        self,
        workers: int = 3,
        queue_size: int = 100,
        retry_attempts: int = 3,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.workers = workers
        self.queue_size = queue_size
        self.retry_attempts = max(0, retry_attempts)
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._queue: Optional[asyncio.Queue[Tuple[Handler, Event]]] = None
        self._tasks: List[asyncio.Task] = []
        self._metrics = DispatcherMetrics()

    @classmethod
    def from_config(cls, config: WorkersConfig) -> "HandlerDispatcher":
        return cls(
            workers=config.count,
            queue_size=config.queue_size,
            retry_attempts=config.retry_attempts,
            retry_delay=config.retry_delay,
        )

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        if self._tasks:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"event-handler-worker-{i}")
            for i in range(self.workers)
        ]
        logger.debug(
            f"Handler dispatcher started: workers={self.workers}, queue_size={self.queue_size}, "
            f"retry_attempts={self.retry_attempts}, retry_delay={self.retry_delay}s"
        )

    async def submit(self, handler: Handler, event: Event) -> None:
        """
        Queue one handler invocation.

        Blocks while the queue is full.

        :raises LifecycleError: When the dispatcher is not running.
        """
        if self._queue is None or not self._tasks:
            raise LifecycleError("handler dispatcher is not running")
        await self._queue.put((handler, event))
        self._metrics.jobs_submitted += 1

    async def join(self) -> None:
        """Wait until every queued job has finished (or been dropped)."""
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self) -> None:
        """Cancel workers; queued jobs that have not started are discarded."""
        if not self._tasks:
            return
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        discarded = 0
        while self._queue is not None and not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            discarded += 1
        if discarded:
            self._metrics.jobs_dropped += discarded
            logger.warning(f"Discarded {discarded} pending handler jobs on shutdown")
        logger.debug("Handler dispatcher stopped")

    def get_metrics(self) -> Dict[str, Any]:
        self._metrics.last_updated = time.time()
        return {**asdict(self._metrics), "pending": self.pending, "workers": len(self._tasks)}

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while True:
            handler, event = await self._queue.get()
            try:
                await self._run_with_retry(handler, event)
            finally:
                self._queue.task_done()

    async def _run_with_retry(self, handler: Handler, event: Event) -> None:
        name = handler_name(handler)
        for attempt in range(self.retry_attempts + 1):
            with tracer.start_as_current_span(
                "event_bus.handle",
                kind=SpanKind.INTERNAL,
                attributes={
                    SpanAttr.EVENT_TYPE.value: event.type,
                    SpanAttr.EVENT_ID.value: event.id,
                    SpanAttr.HANDLER_NAME.value: name,
                    SpanAttr.HANDLER_ATTEMPT.value: attempt + 1,
                },
            ) as span:
                try:
                    await invoke_handler(handler, event)
                    self._metrics.jobs_completed += 1
                    return
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    span.record_exception(exc)
                    if attempt >= self.retry_attempts:
                        self._metrics.jobs_dropped += 1
                        logger.error(
                            f"Handler {name} failed for event {event.type} ({event.id}) "
                            f"after {attempt + 1} attempt(s): {exc}"
                        )
                        return
                    self._metrics.retries += 1
                    delay = self.retry_delay * (attempt + 1)
                    logger.warning(
                        f"Handler {name} failed for event {event.type} ({event.id}), "
                        f"retrying in {delay:.1f}s: {exc}"
                    )
            await self._sleep(delay)
