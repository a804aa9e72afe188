"""
Voice Resource Models
=====================

Pydantic mirrors of the VAPI voice resources (assistants, calls, files,
tools). Field names follow Python conventions and serialize to the camelCase
keys the API uses; unknown fields returned by the API are preserved.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VapiModel(BaseModel):
    """Base for remote resource mirrors: camelCase aliases, extra fields kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for an outgoing request body."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Message(VapiModel):
    """One transcript turn."""

    role: Optional[str] = None
    text: Optional[str] = None
    content: Optional[str] = None

    @property
    def spoken_text(self) -> str:
        # live call payloads carry the utterance under "message"
        extra = self.model_extra or {}
        return self.text or self.content or str(extra.get("message") or "")


class Customer(VapiModel):
    id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class Analysis(VapiModel):
    transcript: Optional[List[Message]] = None
    summary: Optional[str] = None


class Artifact(VapiModel):
    id: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    transcript: Optional[List[Message]] = None
    created_at: Optional[datetime] = None


class Call(VapiModel):
    id: Optional[str] = None
    assistant_id: Optional[str] = None
    status: Optional[str] = None
    duration: Optional[float] = None
    created_at: Optional[datetime] = None
    customer: Optional[Customer] = None
    analysis: Optional[Analysis] = None
    artifacts: Optional[List[Artifact]] = None
    # Either a list of turns or a raw "AI: ...\nUser: ..." text blob
    transcript: Optional[Union[List[Message], str]] = None
    messages: Optional[List[Message]] = None
    conversation: Optional[List[Message]] = None


class Assistant(VapiModel):
    id: Optional[str] = None
    name: Optional[str] = None
    system_prompt: Optional[str] = None
    created_at: Optional[datetime] = None


class File(VapiModel):
    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None


class ToolFunction(VapiModel):
    name: str
    description: Optional[str] = None


class KnowledgeBase(VapiModel):
    provider: str
    name: str
    description: Optional[str] = None
    file_ids: List[str] = Field(default_factory=list)


class Tool(VapiModel):
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[ToolFunction] = None
    knowledge_bases: Optional[List[KnowledgeBase]] = None


class CreateToolRequest(VapiModel):
    type: str
    function: ToolFunction
    knowledge_bases: Optional[List[KnowledgeBase]] = None


class PhoneNumber(VapiModel):
    id: Optional[str] = None
    number: Optional[str] = None
    assistant_id: Optional[str] = None


class UpdateAssistantRequest(VapiModel):
    name: Optional[str] = None
    system_prompt: Optional[str] = None
    server_url: Optional[str] = None


class EndOfCallReport(VapiModel):
    """Payload of an ``end-of-call-report`` server message."""

    type: str = "end-of-call-report"
    call: Optional[Call] = None
    transcript: Optional[Union[List[Message], str]] = None
    summary: Optional[str] = None
    analysis: Optional[Analysis] = None
    assistant_id: Optional[str] = None
    call_id: Optional[str] = None


class TranscriptTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    text: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessedCall(BaseModel):
    """Locally built summary of a completed call; immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    call_id: str
    assistant_id: str
    transcript: List[TranscriptTurn] = Field(default_factory=list)
    duration: float = 0
    status: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_call(
        cls,
        call_id: str,
        assistant_id: str,
        transcript: List[Message],
        call: Optional[Call] = None,
    ) -> "ProcessedCall":
        now = _utcnow()
        return cls(
            id=f"processed_{call_id}",
            call_id=call_id,
            assistant_id=assistant_id,
            transcript=[
                TranscriptTurn(role=m.role or "unknown", text=m.spoken_text)
                for m in transcript
            ],
            duration=(call.duration or 0) if call else 0,
            status=call.status if call else None,
            created_at=now,
            updated_at=now,
        )
