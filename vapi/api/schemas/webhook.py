"""
Webhook API schemas.

Server messages sent by VAPI to the webhook endpoints, resolved into typed
variants by ``message.type``, plus the endpoint response models.
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vapi.exceptions import CallProcessingError
from vapi.voice.models import EndOfCallReport

END_OF_CALL_REPORT = "end-of-call-report"


class EndOfCallReportMessage(EndOfCallReport):
    type: Literal["end-of-call-report"] = END_OF_CALL_REPORT


class GenericServerMessage(BaseModel):
    """Any other server message (status-update, transcript, tool-calls, ...)."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None


ServerMessage = Union[EndOfCallReportMessage, GenericServerMessage]


def parse_server_message(message: Dict[str, Any]) -> ServerMessage:
    """
    Resolve a raw ``message`` object into its typed variant.

    :raises CallProcessingError: When an end-of-call report is malformed.
    """
    if message.get("type") == END_OF_CALL_REPORT:
        try:
            return EndOfCallReportMessage.model_validate(message)
        except ValidationError as exc:
            raise CallProcessingError(f"malformed end-of-call-report: {exc}") from exc
    return GenericServerMessage.model_validate(message)


class WebhookAction(str, Enum):
    IGNORED = "ignored"
    PROCESSED = "processed"
    PUBLISHED = "published"


class WebhookResponse(BaseModel):
    """Response returned for an accepted webhook."""

    status: str = Field(default="ok", json_schema_extra={"example": "ok"})
    action: WebhookAction = Field(
        ...,
        description="What the receiver did with the message",
        json_schema_extra={"example": "processed"},
    )


class WebhookHealthResponse(BaseModel):
    status: str = Field(default="healthy", json_schema_extra={"example": "healthy"})
    timestamp: float = Field(..., json_schema_extra={"example": 1691668800.0})
