"""
Voice Package
=============

VAPI voice resources: models, the REST client and transcript extraction.
The call processor and voice service live in ``vapi.voice.processor`` and
``vapi.voice.service`` and are imported from there.
"""

from .client import VapiClient, detect_mime_type
from .models import (
    Analysis,
    Artifact,
    Assistant,
    Call,
    Customer,
    EndOfCallReport,
    File,
    KnowledgeBase,
    Message,
    PhoneNumber,
    ProcessedCall,
    Tool,
    ToolFunction,
    TranscriptTurn,
    UpdateAssistantRequest,
)
from .transcript import extract_transcript, parse_transcript_text

__all__ = [
    "VapiClient",
    "detect_mime_type",
    "Analysis",
    "Artifact",
    "Assistant",
    "Call",
    "Customer",
    "EndOfCallReport",
    "File",
    "KnowledgeBase",
    "Message",
    "PhoneNumber",
    "ProcessedCall",
    "Tool",
    "ToolFunction",
    "TranscriptTurn",
    "UpdateAssistantRequest",
    "extract_transcript",
    "parse_transcript_text",
]
