"""
VAPI Chat Client
================

Text chat over ``POST /chat``, both request/response and server-sent event
streaming, and session creation over ``POST /session``.
"""

import asyncio
import contextlib
import json
from typing import Any, Dict, List, Optional

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from pydantic import ValidationError

from utils.ml_logging import get_logger
from vapi.chat.types import (
    AssistantConfig,
    ChatMessage,
    ChatResponse,
    CreateChatRequest,
    SessionResponse,
    StreamingChatResponse,
)
from vapi.chat.validation import validate_chat_request
from vapi.config import DEFAULT_STREAM_BUFFER_SIZE, VapiConfig
from vapi.enums.monitoring import SpanAttr
from vapi.exceptions import (
    APIError,
    MissingParameterError,
    ResponseParseError,
    TransportError,
    VapiError,
)
from vapi.http_client import VapiHttpClient

logger = get_logger("vapi.chat.client")
tracer = trace.get_tracer(__name__)

EVENT_STREAM_CONTENT_TYPE = "text/event-stream"
STREAM_DONE_MARKER = "[DONE]"

_END_OF_STREAM = object()


def sse_data(line: str) -> Optional[str]:
    """
    Payload of a server-sent ``data:`` line, or None for anything to skip
    (blank lines, ``:`` comments and other field lines).
    """
    if not line or line.startswith(":") or not line.startswith("data:"):
        return None
    data = line[len("data:"):]
    if data.startswith(" "):
        data = data[1:]
    return data or None


class ChatStream:
    """
    Async iterator over the frames of one streaming chat.

    A single reader task consumes the HTTP response and fills a bounded
    queue; when the queue is full the reader waits, and so does the
    connection. Errors met while streaming are raised from ``__anext__``
    after every frame buffered before them. Use ``async with`` or call
    ``aclose()`` to abandon the stream early.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
        buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
    ):
        self._client = client
        self._url = url
        self._headers = headers
        self._payload = payload
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, buffer_size))
        self._finished = False
        self._task = asyncio.create_task(self._read(), name="chat-stream-reader")

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> StreamingChatResponse:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END_OF_STREAM:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self._finished = True
            raise item
        return item

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._finished = True
        if not self._task.done():
            self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def collect(self) -> str:
        """Drain the stream and return the concatenated message text."""
        parts: List[str] = []
        async for frame in self:
            parts.append(frame.message)
        return "".join(parts)

    async def _read(self) -> None:
        with tracer.start_as_current_span(
            "vapi.create_streaming_chat",
            kind=SpanKind.CLIENT,
            attributes={
                SpanAttr.PEER_SERVICE.value: VapiHttpClient.peer_service,
                SpanAttr.HTTP_METHOD.value: "POST",
                SpanAttr.HTTP_URL.value: self._url,
                SpanAttr.OPERATION_NAME.value: "create_streaming_chat",
            },
        ) as span:
            # every exit except cancellation leaves exactly one terminal item
            terminal: Any = _END_OF_STREAM
            try:
                frames = await self._consume(span)
                logger.debug(f"Streaming chat finished after {frames} frames")
            except asyncio.CancelledError:
                terminal = None
                raise
            except VapiError as exc:
                terminal = exc
            except httpx.DecodingError as exc:
                terminal = ResponseParseError(
                    f"create_streaming_chat: undecodable response body: {exc}"
                )
                terminal.__cause__ = exc
            except httpx.HTTPError as exc:
                terminal = TransportError(f"create_streaming_chat: stream failed: {exc}")
                terminal.__cause__ = exc
            except Exception as exc:
                logger.exception("Unexpected error while reading streaming chat")
                terminal = TransportError(f"create_streaming_chat: stream aborted: {exc}")
                terminal.__cause__ = exc
            finally:
                if terminal is not None:
                    if terminal is not _END_OF_STREAM:
                        span.set_status(Status(StatusCode.ERROR, str(terminal)))
                        logger.error(f"Streaming chat failed: {terminal}")
                    await self._queue.put(terminal)

    async def _consume(self, span) -> int:
        frames = 0
        async with self._client.stream(
            "POST", self._url, headers=self._headers, json=self._payload
        ) as response:
            span.set_attribute(SpanAttr.HTTP_STATUS_CODE.value, response.status_code)
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise APIError(response.status_code, body, "create_streaming_chat")

            async for line in response.aiter_lines():
                data = sse_data(line.rstrip("\r"))
                if data is None:
                    continue
                if data == STREAM_DONE_MARKER:
                    break
                try:
                    frame = StreamingChatResponse.model_validate(json.loads(data))
                except (ValueError, ValidationError) as exc:
                    raise ResponseParseError(
                        f"create_streaming_chat: invalid stream frame: {exc}"
                    ) from exc
                await self._queue.put(frame)
                frames += 1
                if frame.done:
                    break
        return frames


class ChatClient(VapiHttpClient):
    """
    REST client for VAPI chats and sessions.

    Usage::

        async with ChatClient(token) as chat:
            response = await chat.create_chat_with_text("Hi", assistant_id="asst_1")
            async with await chat.create_streaming_chat_with_text("Hi", "asst_1") as stream:
                async for frame in stream:
                    print(frame.message, end="")
    """

    @classmethod
    def from_config(
        cls, config: VapiConfig, client: Optional[httpx.AsyncClient] = None
    ) -> "ChatClient":
        return cls(
            config.api_token,
            base_url=config.base_url,
            timeout=config.timeout,
            client=client,
        )

    def get_config(self) -> VapiConfig:
        """Connection settings currently in use."""
        return VapiConfig(
            api_token=self.api_token, base_url=self.base_url, timeout=self.timeout
        )

    def validate_request(self, req: Optional[CreateChatRequest]) -> None:
        validate_chat_request(req)

    async def create_chat(self, req: CreateChatRequest) -> ChatResponse:
        """
        Send a chat turn and wait for the complete response.

        :raises RequestValidationError: When the request is invalid; nothing is sent.
        :raises TransportError: On connection failures.
        :raises APIError: On non-2xx responses.
        :raises ResponseParseError: When the response body is not a chat.
        """
        validate_chat_request(req)
        data = await self.request_json(
            "POST", "/chat", "create_chat", json=req.to_payload()
        )
        try:
            response = ChatResponse.model_validate(data)
        except ValidationError as exc:
            raise ResponseParseError(f"create_chat: unexpected response: {exc}") from exc
        logger.info(f"Chat {response.id} created")
        return response

    async def create_streaming_chat(
        self,
        req: CreateChatRequest,
        buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
    ) -> ChatStream:
        """
        Start a streaming chat.

        The request is validated before anything is sent; ``stream`` is forced
        on. Iterate the returned ``ChatStream`` for frames.

        :param req: Chat request.
        :param buffer_size: Frames buffered ahead of the consumer.
        :raises RequestValidationError: When the request is invalid.
        """
        validate_chat_request(req)
        payload = req.model_copy(update={"stream": True}).to_payload()
        return ChatStream(
            self._client,
            self.url("/chat"),
            self.headers(accept=EVENT_STREAM_CONTENT_TYPE),
            payload,
            buffer_size=buffer_size,
        )

    async def create_chat_with_text(
        self, text: str, assistant_id: Optional[str] = None
    ) -> ChatResponse:
        return await self.create_chat(
            CreateChatRequest(input=text, assistant_id=assistant_id)
        )

    async def create_chat_with_messages(
        self, messages: List[ChatMessage], assistant_id: Optional[str] = None
    ) -> ChatResponse:
        return await self.create_chat(
            CreateChatRequest(input=messages, assistant_id=assistant_id)
        )

    async def create_chat_with_assistant(
        self, text: str, assistant: AssistantConfig
    ) -> ChatResponse:
        return await self.create_chat(CreateChatRequest(input=text, assistant=assistant))

    async def continue_chat(self, text: str, previous_chat_id: str) -> ChatResponse:
        """Send a follow-up turn to an earlier chat."""
        return await self.create_chat(
            CreateChatRequest(input=text, previous_chat_id=previous_chat_id)
        )

    async def create_session_chat(self, text: str, session_id: str) -> ChatResponse:
        return await self.create_chat(
            CreateChatRequest(input=text, session_id=session_id)
        )

    async def create_streaming_chat_with_text(
        self,
        text: str,
        assistant_id: Optional[str] = None,
        buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
    ) -> ChatStream:
        return await self.create_streaming_chat(
            CreateChatRequest(input=text, assistant_id=assistant_id), buffer_size
        )

    async def create_streaming_chat_with_assistant(
        self,
        text: str,
        assistant: AssistantConfig,
        buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
    ) -> ChatStream:
        return await self.create_streaming_chat(
            CreateChatRequest(input=text, assistant=assistant), buffer_size
        )

    async def create_session(self, assistant_id: str) -> SessionResponse:
        """
        Create a chat session bound to an assistant.

        :raises MissingParameterError: When ``assistant_id`` is empty.
        """
        if not assistant_id:
            raise MissingParameterError("assistant_id")
        data = await self.request_json(
            "POST", "/session", "create_session", json={"assistantId": assistant_id}
        )
        try:
            session = SessionResponse.model_validate(data)
        except ValidationError as exc:
            raise ResponseParseError(
                f"create_session: unexpected response: {exc}"
            ) from exc
        logger.info(f"Session {session.id} created for assistant {assistant_id}")
        return session
