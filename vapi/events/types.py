"""
Event Types
===========

The ``Event`` value object carried on the bus, the well-known event type
names, the typed payloads attached to them and the handler protocol.
"""

import json
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Protocol,
    Type,
    Union,
    runtime_checkable,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from vapi.exceptions import EventSerializationError
from vapi.voice.models import ProcessedCall


class EventTypes:
    """Well-known event type names."""

    CALL_COMPLETED = "vapi.call.completed"
    CALL_STARTED = "vapi.call.started"
    TRANSCRIPT_UPDATE = "vapi.transcript.update"
    ASSISTANT_UPDATED = "vapi.assistant.updated"
    FILE_UPLOADED = "vapi.file.uploaded"
    TOOL_CREATED = "vapi.tool.created"
    WEBHOOK_RECEIVED = "vapi.webhook.received"
    CALL_PROCESSED = "call-processed"


class EventSources:
    WEBHOOK = "vapi-webhook"
    PROCESSOR = "vapi-processor"
    LIBRARY = "vapi-library"


class WebhookReceivedData(BaseModel):
    """Raw webhook envelope republished when no call processor is configured."""

    model_config = ConfigDict(extra="allow")

    message: Optional[Dict[str, Any]] = None


class CallProcessedData(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed_call_id: str
    call_id: str
    assistant_id: str


# Event type -> payload model used to decode ``data`` on the way in
PAYLOAD_TYPES: Dict[str, Type[BaseModel]] = {
    EventTypes.CALL_COMPLETED: ProcessedCall,
    EventTypes.WEBHOOK_RECEIVED: WebhookReceivedData,
    EventTypes.CALL_PROCESSED: CallProcessedData,
}


def register_payload_type(event_type: str, model: Type[BaseModel]) -> None:
    """Register a payload model so events of ``event_type`` decode into it."""
    PAYLOAD_TYPES[event_type] = model


def generate_event_id() -> str:
    # Time-derived, not globally unique
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S.%f")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(BaseModel):
    """
    A typed event travelling through the bus.

    All fields are read-only after construction except ``metadata``, which
    producers and middlemen may append to.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_event_id)
    type: str
    timestamp: datetime = Field(default_factory=_utcnow)
    source: str = ""
    data: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _decode_payload(cls, value: Any, info: ValidationInfo) -> Any:
        model = PAYLOAD_TYPES.get(info.data.get("type", ""))
        if model is None or value is None or isinstance(value, model):
            return value
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        if isinstance(value, dict):
            return model.model_validate(value)
        return value

    @field_validator("timestamp")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def create(cls, event_type: str, source: str, data: Any = None) -> "Event":
        return cls(type=event_type, source=source, data=data)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def to_json(self) -> str:
        """
        Encode the event to its wire format.

        :return: JSON object ``{id, type, timestamp, source, data, metadata}``.
        :raises EventSerializationError: When the payload or metadata cannot be encoded.
        """
        try:
            return json.dumps(self.model_dump(mode="json"))
        except (TypeError, ValueError) as exc:
            raise EventSerializationError(
                f"failed to serialize event {self.id} ({self.type}): {exc}"
            ) from exc

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "Event":
        """
        Decode an event from its wire format.

        :raises EventSerializationError: When the document is not a valid event.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise EventSerializationError(f"failed to decode event: {exc}") from exc


@runtime_checkable
class EventHandler(Protocol):
    """Object-style handler, bound to one event type."""

    def handle(self, event: Event) -> Union[None, Awaitable[None]]:
        ...


# Plain callables (sync or async) are accepted alongside EventHandler objects
EventCallback = Callable[[Event], Union[None, Awaitable[None]]]
Handler = Union[EventHandler, EventCallback]
