"""
Chat Package
============

VAPI text chat: request/response and streaming clients, request validation
and builders for inline assistants and chat requests.
"""

from .builders import (
    AssistantBuilder,
    RequestBuilder,
    create_anthropic_assistant,
    create_assistant_message,
    create_chat_message,
    create_continuation_request,
    create_conversation_request,
    create_openai_assistant,
    create_sales_assistant,
    create_session_request,
    create_simple_text_request,
    create_streaming_request,
    create_system_message,
    create_telecom_assistant,
    create_user_message,
)
from .client import ChatClient, ChatStream
from .types import (
    AssistantConfig,
    AssistantOverrides,
    ChatMessage,
    ChatModel,
    ChatResponse,
    Cost,
    CreateChatRequest,
    ModelMessage,
    SessionResponse,
    StreamingChatResponse,
    Transcriber,
    Voice,
)
from .validation import validate_chat_request

__all__ = [
    "AssistantBuilder",
    "RequestBuilder",
    "create_anthropic_assistant",
    "create_assistant_message",
    "create_chat_message",
    "create_continuation_request",
    "create_conversation_request",
    "create_openai_assistant",
    "create_sales_assistant",
    "create_session_request",
    "create_simple_text_request",
    "create_streaming_request",
    "create_system_message",
    "create_telecom_assistant",
    "create_user_message",
    "ChatClient",
    "ChatStream",
    "AssistantConfig",
    "AssistantOverrides",
    "ChatMessage",
    "ChatModel",
    "ChatResponse",
    "Cost",
    "CreateChatRequest",
    "ModelMessage",
    "SessionResponse",
    "StreamingChatResponse",
    "Transcriber",
    "Voice",
    "validate_chat_request",
]
