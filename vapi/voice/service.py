from pathlib import Path
from typing import List, Optional, Union

from utils.ml_logging import get_logger
from vapi.api.app import create_app
from vapi.api.receiver import WebhookReceiver
from vapi.api.server import WebhookServer
from vapi.config import AppConfig
from vapi.events.bus import EventBus
from vapi.voice.client import VapiClient
from vapi.voice.models import (
    Assistant,
    Call,
    File,
    Message,
    Tool,
    UpdateAssistantRequest,
)
from vapi.voice.processor import CallProcessor

logger = get_logger("vapi.voice.service")


class VoiceService:
    """
    Voice side of the library: the REST client, the call processor and the
    webhook server that feeds it.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: Optional[EventBus] = None,
        client: Optional[VapiClient] = None,
    ):
        self.config = config
        self.event_bus = event_bus
        self.client = client or VapiClient(
            config.vapi.api_token,
            base_url=config.vapi.base_url,
            timeout=config.vapi.timeout,
            debug_dir=config.vapi.debug_dir,
        )
        self.processor = CallProcessor(self.client, event_bus)
        self.receiver = WebhookReceiver(event_bus, self.processor)
        self.app = create_app(self.receiver)
        self.webhook_server = WebhookServer(
            self.app, host=config.tunnel.host, port=config.tunnel.port
        )

    async def start(self) -> None:
        await self.webhook_server.start()

    async def stop(self) -> None:
        await self.webhook_server.stop()

    async def aclose(self) -> None:
        """Stop the server and release the HTTP client."""
        try:
            await self.stop()
        finally:
            await self.client.aclose()

    async def list_assistants(self) -> List[Assistant]:
        return await self.client.list_assistants()

    async def get_assistant(self, assistant_id: str) -> Assistant:
        return await self.client.get_assistant(assistant_id)

    async def update_assistant(
        self, assistant_id: str, update: UpdateAssistantRequest
    ) -> Assistant:
        return await self.client.update_assistant(assistant_id, update)

    async def list_calls(self, assistant_id: str, limit: int = 100) -> List[Call]:
        return await self.client.list_calls(assistant_id, limit)

    async def get_call(self, call_id: str) -> Call:
        return await self.client.get_call(call_id)

    async def upload_file(self, file_path: Union[str, Path]) -> File:
        return await self.client.upload_file(file_path)

    async def create_query_tool(
        self, file_ids: List[str], tool_name: str, description: str = ""
    ) -> Tool:
        return await self.client.create_query_tool(file_ids, tool_name, description)

    async def attach_tool_to_assistant(self, assistant_id: str, tool_id: str) -> bool:
        return await self.client.attach_tool_to_assistant(assistant_id, tool_id)

    def extract_transcript(self, call: Call) -> List[Message]:
        return self.client.extract_transcript(call)
