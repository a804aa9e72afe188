import asyncio
import contextlib
import socket
from typing import Optional

import uvicorn
from fastapi import FastAPI

from utils.ml_logging import get_logger
from vapi.exceptions import LifecycleError, TransportError

logger = get_logger("vapi.api.server")


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class WebhookServer:
    """
    Serves the webhook app with uvicorn on a background asyncio task.

    The listening socket is bound in ``start()`` so that a busy port surfaces
    as an exception to the caller.
    """

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",  # nosec: B104
        port: int = 8080,
        startup_timeout: float = 10.0,
    ):
        self.app = app
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout
        self._server: Optional[_EmbeddedServer] = None
        self._task: Optional[asyncio.Task] = None
        self._socket: Optional[socket.socket] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise TransportError(
                f"cannot bind webhook server to {self.host}:{self.port}: {exc}"
            ) from exc
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        """
        Bind the port and start serving; returns once uvicorn is accepting.

        :raises LifecycleError: When already running.
        :raises TransportError: When the port cannot be bound or startup fails.
        """
        if self.is_running:
            raise LifecycleError("webhook server is already running")

        self._socket = self._bind()
        self.port = self._socket.getsockname()[1]
        config = uvicorn.Config(
            self.app,
            log_level="warning",
            access_log=False,
            lifespan="off",
        )
        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(
            self._server.serve(sockets=[self._socket]), name="webhook-server"
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout
        while not self._server.started:
            if self._task.done():
                await self._cleanup()
                raise TransportError("webhook server exited during startup")
            if loop.time() > deadline:
                await self.stop()
                raise TransportError("webhook server did not start in time")
            await asyncio.sleep(0.05)

        logger.info(f"Webhook server listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._task, timeout=self.startup_timeout)
        except asyncio.TimeoutError:
            self._server.force_exit = True
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        await self._cleanup()
        logger.info("Webhook server stopped")

    async def _cleanup(self) -> None:
        if self._task is not None and self._task.done() and not self._task.cancelled():
            exc = self._task.exception()
            if exc is not None:
                logger.error(f"Webhook server task failed: {exc}")
        if self._socket is not None:
            self._socket.close()
        self._server = None
        self._task = None
        self._socket = None
