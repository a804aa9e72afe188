"""
Chat Builders
=============

Fluent builders for inline assistants and chat requests, ready-made assistant
presets, and small helpers for messages and common request shapes.

Usage:
    assistant = (
        AssistantBuilder()
        .with_model("openai", "gpt-4")
        .with_system_message("You are terse.")
        .with_temperature(0.2)
        .build()
    )
    request = RequestBuilder().with_text_input("Hi").with_assistant(assistant).build()
"""

from typing import Any, Dict, List, Optional

from vapi.chat.types import (
    ASSISTANT_ROLE,
    SYSTEM_ROLE,
    USER_ROLE,
    AssistantConfig,
    AssistantOverrides,
    ChatMessage,
    ChatModel,
    CreateChatRequest,
    ModelMessage,
    Transcriber,
    Voice,
)
from vapi.chat.validation import validate_chat_request

ANTHROPIC_PROVIDER = "anthropic"
ANTHROPIC_DEFAULT_MODEL = "claude-3-opus-20240229"
OPENAI_PROVIDER = "openai"
OPENAI_DEFAULT_MODEL = "gpt-4"

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
SALES_MAX_TOKENS = 1500
DEFAULT_FIRST_MESSAGE = "Hello! How can I help you today?"
ASSISTANT_SPEAKS_FIRST = "assistant-speaks-first"


class AssistantBuilder:
    """Builds an ``AssistantConfig`` step by step."""

    def __init__(self):
        self._assistant = AssistantConfig()

    def _model(self) -> ChatModel:
        if self._assistant.model is None:
            self._assistant.model = ChatModel()
        return self._assistant.model

    def with_model(self, provider: str, model: str) -> "AssistantBuilder":
        chat_model = self._model()
        chat_model.provider = provider
        chat_model.model = model
        return self

    def with_model_messages(self, messages: List[ModelMessage]) -> "AssistantBuilder":
        self._model().messages = list(messages)
        return self

    def _append_model_message(self, role: str, content: str) -> "AssistantBuilder":
        chat_model = self._model()
        if chat_model.messages is None:
            chat_model.messages = []
        chat_model.messages.append(ModelMessage(role=role, content=content))
        return self

    def with_system_message(self, content: str) -> "AssistantBuilder":
        return self._append_model_message(SYSTEM_ROLE, content)

    def with_assistant_message(self, content: str) -> "AssistantBuilder":
        return self._append_model_message(ASSISTANT_ROLE, content)

    def with_voice(self, provider: str, voice_id: str) -> "AssistantBuilder":
        self._assistant.voice = Voice(provider=provider, voice_id=voice_id)
        return self

    def with_first_message(self, message: str) -> "AssistantBuilder":
        self._assistant.first_message = message
        return self

    def with_first_message_mode(self, mode: str) -> "AssistantBuilder":
        self._assistant.first_message_mode = mode
        return self

    def with_max_duration(self, seconds: int) -> "AssistantBuilder":
        self._assistant.max_duration_seconds = seconds
        return self

    def with_transcriber(self, provider: str, language: str) -> "AssistantBuilder":
        self._assistant.transcriber = Transcriber(provider=provider, language=language)
        return self

    def with_temperature(self, temperature: float) -> "AssistantBuilder":
        self._model().temperature = temperature
        return self

    def with_max_tokens(self, tokens: int) -> "AssistantBuilder":
        self._model().max_tokens = tokens
        return self

    def with_name(self, name: str) -> "AssistantBuilder":
        self._assistant.name = name
        return self

    def with_metadata(self, metadata: Dict[str, Any]) -> "AssistantBuilder":
        self._assistant.metadata = dict(metadata)
        return self

    def build(self) -> AssistantConfig:
        return self._assistant.model_copy(deep=True)


class RequestBuilder:
    """Builds a ``CreateChatRequest``; ``validate()`` checks it without sending."""

    def __init__(self):
        self._request = CreateChatRequest()

    def with_text_input(self, text: str) -> "RequestBuilder":
        self._request.input = text
        return self

    def with_message_input(self, messages: List[ChatMessage]) -> "RequestBuilder":
        self._request.input = list(messages)
        return self

    def with_assistant_id(self, assistant_id: str) -> "RequestBuilder":
        self._request.assistant_id = assistant_id
        return self

    def with_assistant(self, assistant: AssistantConfig) -> "RequestBuilder":
        self._request.assistant = assistant
        return self

    def with_session_id(self, session_id: str) -> "RequestBuilder":
        self._request.session_id = session_id
        return self

    def with_previous_chat_id(self, chat_id: str) -> "RequestBuilder":
        self._request.previous_chat_id = chat_id
        return self

    def with_name(self, name: str) -> "RequestBuilder":
        self._request.name = name
        return self

    def with_streaming(self, stream: bool = True) -> "RequestBuilder":
        self._request.stream = stream
        return self

    def with_assistant_overrides(self, overrides: AssistantOverrides) -> "RequestBuilder":
        self._request.assistant_overrides = overrides
        return self

    def build(self) -> CreateChatRequest:
        return self._request.model_copy(deep=True)

    def validate(self) -> None:
        validate_chat_request(self._request)


# ============================================================================
# Assistant presets
# ============================================================================


def _preset(provider: str, model: str, system_prompt: str, max_tokens: int) -> AssistantBuilder:
    return (
        AssistantBuilder()
        .with_model(provider, model)
        .with_system_message(system_prompt)
        .with_temperature(DEFAULT_TEMPERATURE)
        .with_max_tokens(max_tokens)
        .with_first_message_mode(ASSISTANT_SPEAKS_FIRST)
    )


def create_anthropic_assistant(system_prompt: str) -> AssistantConfig:
    return (
        _preset(ANTHROPIC_PROVIDER, ANTHROPIC_DEFAULT_MODEL, system_prompt, DEFAULT_MAX_TOKENS)
        .with_first_message(DEFAULT_FIRST_MESSAGE)
        .build()
    )


def create_openai_assistant(system_prompt: str) -> AssistantConfig:
    return (
        _preset(OPENAI_PROVIDER, OPENAI_DEFAULT_MODEL, system_prompt, DEFAULT_MAX_TOKENS)
        .with_first_message(DEFAULT_FIRST_MESSAGE)
        .build()
    )


SALES_PROMPT_TEMPLATE = """You are a professional sales assistant for {company}, specializing in {industry}.
Your role is to:
1. Qualify leads by understanding their needs and budget
2. Provide helpful information about our services
3. Schedule appointments when appropriate
4. Maintain a friendly, professional tone
5. Ask relevant questions to understand customer requirements

Always be helpful, informative, and focused on providing value to potential customers."""


def create_sales_assistant(company: str, industry: str) -> AssistantConfig:
    """Lead-qualifying sales assistant for ``company`` in ``industry``."""
    prompt = SALES_PROMPT_TEMPLATE.format(company=company, industry=industry)
    return (
        _preset(ANTHROPIC_PROVIDER, ANTHROPIC_DEFAULT_MODEL, prompt, SALES_MAX_TOKENS)
        .with_first_message(
            f"Hello! I'm here to help you learn more about {company}'s {industry} "
            "services. How can I assist you today?"
        )
        .with_name(f"{company} Sales Assistant")
        .build()
    )


TELECOM_PROMPT = """Eres un asistente de ventas especializado en servicios de telecomunicaciones en Colombia, específicamente en fibra óptica para internet.

Tu rol es:
1. Calificar leads entendiendo sus necesidades de internet y presupuesto
2. Explicar los beneficios de la fibra óptica vs otros tipos de conexión
3. Preguntar sobre su ubicación, estrato socioeconómico, y tipo de edificio
4. Ofrecer planes apropiados según sus necesidades
5. Programar citas técnicas cuando sea apropiado
6. Mantener un tono amigable y profesional en español

Siempre sé útil, informativo, y enfócate en brindar valor a los clientes potenciales.
Conoces bien el mercado colombiano y las necesidades específicas de conectividad en ciudades como Bogotá, Medellín, Cali, y Barranquilla."""


def create_telecom_assistant() -> AssistantConfig:
    """Spanish-language fibre-internet sales assistant for the Colombian market."""
    return (
        _preset(ANTHROPIC_PROVIDER, ANTHROPIC_DEFAULT_MODEL, TELECOM_PROMPT, SALES_MAX_TOKENS)
        .with_first_message(
            "¡Hola! Soy tu asistente especializado en servicios de fibra óptica. "
            "¿Te interesa conocer nuestros planes de internet de alta velocidad?"
        )
        .with_name("Asistente de Fibra Óptica")
        .with_transcriber("assembly-ai", "es")
        .with_voice("azure", "es-CO-SalomeNeural")
        .build()
    )


# ============================================================================
# Message and request helpers
# ============================================================================


def create_chat_message(
    role: str,
    message: str,
    time: Optional[int] = None,
    seconds_from_start: Optional[int] = None,
) -> ChatMessage:
    return ChatMessage(
        role=role, content=message, time=time, seconds_from_start=seconds_from_start
    )


def create_user_message(message: str) -> ChatMessage:
    return ChatMessage(role=USER_ROLE, content=message)


def create_assistant_message(message: str) -> ChatMessage:
    return ChatMessage(role=ASSISTANT_ROLE, content=message)


def create_system_message(message: str) -> ChatMessage:
    return ChatMessage(role=SYSTEM_ROLE, content=message)


def create_simple_text_request(text: str, assistant_id: str) -> CreateChatRequest:
    return RequestBuilder().with_text_input(text).with_assistant_id(assistant_id).build()


def create_conversation_request(
    messages: List[ChatMessage], assistant_id: str
) -> CreateChatRequest:
    return (
        RequestBuilder().with_message_input(messages).with_assistant_id(assistant_id).build()
    )


def create_streaming_request(text: str, assistant_id: str) -> CreateChatRequest:
    return (
        RequestBuilder()
        .with_text_input(text)
        .with_assistant_id(assistant_id)
        .with_streaming(True)
        .build()
    )


def create_continuation_request(text: str, previous_chat_id: str) -> CreateChatRequest:
    return (
        RequestBuilder().with_text_input(text).with_previous_chat_id(previous_chat_id).build()
    )


def create_session_request(text: str, session_id: str) -> CreateChatRequest:
    return RequestBuilder().with_text_input(text).with_session_id(session_id).build()
