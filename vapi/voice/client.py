"""
VAPI Voice Client
=================

REST façade over the voice resources: assistants, calls, knowledge-base
files and query tools.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import ValidationError

from utils.ml_logging import get_logger
from vapi.config import DEFAULT_VAPI_BASE_URL
from vapi.exceptions import MissingParameterError, ResponseParseError
from vapi.http_client import VapiHttpClient
from vapi.voice.models import (
    Assistant,
    Call,
    CreateToolRequest,
    File,
    KnowledgeBase,
    Message,
    Tool,
    ToolFunction,
    UpdateAssistantRequest,
    VapiModel,
)
from vapi.voice.transcript import extract_transcript

logger = get_logger("vapi.voice.client")

# Server-managed assistant fields rejected by PATCH /assistant/{id}
READ_ONLY_ASSISTANT_FIELDS = ("id", "createdAt", "updatedAt", "orgId", "isServerUrlSecretSet")

MIME_TYPES_BY_EXTENSION = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".json": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
DEFAULT_MIME_TYPE = "text/plain"


def detect_mime_type(path: Union[str, Path], head: bytes = b"") -> str:
    """
    Pick the upload MIME type for a knowledge-base file.

    :param path: File path; the extension is checked first.
    :param head: First bytes of the file, sniffed when the extension is unknown.
    :return: A MIME type accepted by the file endpoint, ``text/plain`` by default.
    """
    mime = MIME_TYPES_BY_EXTENSION.get(Path(path).suffix.lower())
    if mime:
        return mime
    if head.startswith(b"%PDF-"):
        return "application/pdf"
    stripped = head.lstrip()
    if stripped[:1] in (b"{", b"["):
        try:
            json.loads(head.decode("utf-8"))
            return "application/json"
        except ValueError:
            pass
    return DEFAULT_MIME_TYPE


ModelT = TypeVar("ModelT", bound=VapiModel)


def _parse(model: Type[ModelT], data: Any, operation: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ResponseParseError(f"{operation}: unexpected response shape: {exc}") from exc


def _strip_read_only(config: Dict[str, Any]) -> Dict[str, Any]:
    for key in READ_ONLY_ASSISTANT_FIELDS:
        config.pop(key, None)
    return config


class VapiClient(VapiHttpClient):
    """
    Client for the VAPI voice API.

    :param api_token: Bearer token for the VAPI account.
    :param base_url: API root, ``https://api.vapi.ai`` by default.
    :param timeout: Per-request timeout in seconds.
    :param debug_dir: When set, fetched call records are dumped here as
        ``call_data_<id>.json``.
    :param client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_VAPI_BASE_URL,
        timeout: float = 30.0,
        debug_dir: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(api_token, base_url=base_url, timeout=timeout, client=client)
        self.debug_dir = Path(debug_dir) if debug_dir else None
        if self.debug_dir:
            self.debug_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Assistants
    # ------------------------------------------------------------------

    async def list_assistants(self) -> List[Assistant]:
        data = await self.request_json("GET", "/assistant", "list_assistants")
        return [_parse(Assistant, item, "list_assistants") for item in data or []]

    async def get_assistant(self, assistant_id: str) -> Assistant:
        data = await self._get_assistant_config(assistant_id)
        return _parse(Assistant, data, "get_assistant")

    async def update_assistant(
        self, assistant_id: str, update: UpdateAssistantRequest
    ) -> Assistant:
        """
        Update an assistant's name, system prompt and/or server URL.

        The current configuration is fetched, patched locally and sent back
        whole (minus read-only fields); the refreshed assistant is returned.

        :param assistant_id: Assistant to update.
        :param update: Fields to change; None values are left untouched.
        :return: The assistant as stored after the update.
        """
        config = await self._get_assistant_config(assistant_id)

        if update.system_prompt is not None:
            model = config.get("model")
            if isinstance(model, dict):
                messages = model.get("messages")
                if isinstance(messages, list) and messages:
                    first = messages[0]
                    if isinstance(first, dict) and first.get("role") == "system":
                        first["content"] = update.system_prompt
                else:
                    model["messages"] = [
                        {"role": "system", "content": update.system_prompt}
                    ]

        if update.server_url is not None:
            config["serverUrl"] = update.server_url
        if update.name is not None:
            config["name"] = update.name

        await self.request(
            "PATCH",
            f"/assistant/{assistant_id}",
            "update_assistant",
            json=_strip_read_only(config),
        )
        logger.info(f"Updated assistant {assistant_id}")
        return await self.get_assistant(assistant_id)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def list_calls(self, assistant_id: str, limit: int = 100) -> List[Call]:
        data = await self.request_json(
            "GET",
            "/call",
            "list_calls",
            params={"assistantId": assistant_id, "limit": limit},
        )
        return [_parse(Call, item, "list_calls") for item in data or []]

    async def get_call(self, call_id: str) -> Call:
        if not call_id:
            raise MissingParameterError("call_id")
        data = await self.request_json("GET", f"/call/{call_id}", "get_call")
        if not isinstance(data, dict):
            raise ResponseParseError(f"get_call: expected an object for call {call_id}")
        if self.debug_dir:
            await asyncio.to_thread(self._dump_call, call_id, data)
        return _parse(Call, data, "get_call")

    def _dump_call(self, call_id: str, data: Dict[str, Any]) -> None:
        target = self.debug_dir / f"call_data_{call_id}.json"
        try:
            target.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning(f"Could not write call debug dump {target}: {exc}")

    def extract_transcript(self, call: Call) -> List[Message]:
        return extract_transcript(call)

    # ------------------------------------------------------------------
    # Files and tools
    # ------------------------------------------------------------------

    async def upload_file(self, file_path: Union[str, Path]) -> File:
        """
        Upload a knowledge-base file as multipart form data.

        :param file_path: Local file to upload.
        :return: The created file resource.
        :raises OSError: When the file cannot be read.
        """
        path = Path(file_path)
        content = await asyncio.to_thread(path.read_bytes)
        mime_type = detect_mime_type(path, content[:512])

        data = await self.request_json(
            "POST",
            "/file",
            "upload_file",
            content_type=None,
            data={"contentType": mime_type},
            files={"file": (path.name, content, mime_type)},
        )
        uploaded = _parse(File, data or {}, "upload_file")
        logger.info(f"Uploaded {path.name} ({mime_type}) as file {uploaded.id}")
        return uploaded

    async def create_query_tool(
        self, file_ids: List[str], tool_name: str, description: str = ""
    ) -> Tool:
        payload = CreateToolRequest(
            type="query",
            function=ToolFunction(name=tool_name),
            knowledge_bases=[
                KnowledgeBase(
                    provider="google",
                    name=tool_name,
                    description=description or None,
                    file_ids=list(file_ids),
                )
            ],
        )
        data = await self.request_json(
            "POST", "/tool", "create_query_tool", json=payload.to_payload()
        )
        tool = _parse(Tool, data or {}, "create_query_tool")
        logger.info(f"Created query tool {tool_name} ({tool.id}) over {len(file_ids)} file(s)")
        return tool

    async def attach_tool_to_assistant(self, assistant_id: str, tool_id: str) -> bool:
        """
        Add ``tool_id`` to the assistant's ``model.toolIds``.

        :return: False when the tool was already attached (nothing sent),
            True after a successful update.
        """
        config = await self._get_assistant_config(assistant_id)
        model = config.get("model")
        if not isinstance(model, dict):
            model = {}
            config["model"] = model

        tool_ids = list(model.get("toolIds") or [])
        if tool_id in tool_ids:
            logger.debug(f"Tool {tool_id} already attached to assistant {assistant_id}")
            return False
        tool_ids.append(tool_id)
        model["toolIds"] = tool_ids

        await self.request(
            "PATCH",
            f"/assistant/{assistant_id}",
            "attach_tool_to_assistant",
            json=_strip_read_only(config),
        )
        logger.info(f"Attached tool {tool_id} to assistant {assistant_id}")
        return True

    async def _get_assistant_config(self, assistant_id: str) -> Dict[str, Any]:
        if not assistant_id:
            raise MissingParameterError("assistant_id")
        data = await self.request_json(
            "GET", f"/assistant/{assistant_id}", "get_assistant"
        )
        if not isinstance(data, dict):
            raise ResponseParseError(
                f"get_assistant: expected an object for assistant {assistant_id}"
            )
        return data
