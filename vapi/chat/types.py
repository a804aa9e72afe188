"""
Chat Types
==========

Request and response models for the VAPI chat and session endpoints, plus the
inline assistant configuration a chat may carry instead of an assistant id.
Only the commonly used assistant fields are typed; anything else the API
accepts or returns passes through as extra fields.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from vapi.voice.models import VapiModel

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"


class ChatMessage(VapiModel):
    role: str
    content: str
    time: Optional[int] = None
    seconds_from_start: Optional[int] = None


ChatInput = Union[str, List[ChatMessage]]


# ============================================================================
# Inline assistant configuration
# ============================================================================


class ModelMessage(VapiModel):
    role: str
    content: str


class ServerConfig(VapiModel):
    url: str
    timeout_seconds: Optional[int] = None
    headers: Optional[Dict[str, Any]] = None


class ChatModel(VapiModel):
    provider: Optional[str] = None
    model: Optional[str] = None
    messages: Optional[List[ModelMessage]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_ids: Optional[List[str]] = None
    knowledge_base_id: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class Voice(VapiModel):
    provider: str
    voice_id: str
    speed: Optional[float] = None


class Transcriber(VapiModel):
    provider: str
    language: Optional[str] = None
    model: Optional[str] = None


class AssistantConfig(VapiModel):
    """Transient assistant definition sent inline with a chat request."""

    name: Optional[str] = None
    model: Optional[ChatModel] = None
    voice: Optional[Voice] = None
    transcriber: Optional[Transcriber] = None
    first_message: Optional[str] = None
    first_message_mode: Optional[str] = None
    max_duration_seconds: Optional[int] = None
    end_call_message: Optional[str] = None
    end_call_phrases: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    server: Optional[ServerConfig] = None


class AssistantOverrides(AssistantConfig):
    variable_values: Optional[Dict[str, Any]] = None


# ============================================================================
# Requests and responses
# ============================================================================


class CreateChatRequest(VapiModel):
    """
    Body of ``POST /chat``.

    Exactly one target must be present: ``assistant_id``, ``assistant``,
    ``session_id`` or ``previous_chat_id`` (the last two are mutually
    exclusive). See ``vapi.chat.validation``.
    """

    input: Optional[ChatInput] = None
    assistant_id: Optional[str] = None
    assistant: Optional[AssistantConfig] = None
    assistant_overrides: Optional[AssistantOverrides] = None
    name: Optional[str] = None
    session_id: Optional[str] = None
    previous_chat_id: Optional[str] = None
    stream: Optional[bool] = None


class Cost(VapiModel):
    type: Optional[str] = None
    model: Optional[Any] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    cost: Optional[float] = None


class ChatResponse(VapiModel):
    id: str
    org_id: Optional[str] = None
    assistant_id: Optional[str] = None
    assistant: Optional[AssistantConfig] = None
    name: Optional[str] = None
    session_id: Optional[str] = None
    previous_chat_id: Optional[str] = None
    input: Optional[ChatInput] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    output: List[ChatMessage] = Field(default_factory=list)
    stream: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    costs: List[Cost] = Field(default_factory=list)
    cost: Optional[float] = None

    @property
    def output_text(self) -> str:
        """Concatenated content of the assistant's output messages."""
        return "".join(message.content for message in self.output)


class StreamingChatResponse(VapiModel):
    """One server-sent frame of a streaming chat."""

    id: Optional[str] = None
    org_id: Optional[str] = None
    message: str = ""
    done: bool = False


class SessionResponse(VapiModel):
    id: str
    org_id: Optional[str] = None
    assistant_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
