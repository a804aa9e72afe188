"""
Transcript Extraction
=====================

Pull a transcript out of a call record. The API exposes it in several places
depending on call type and age; the first non-empty source wins:

1. ``call.analysis.transcript``
2. ``call.transcript`` when it is a list of turns
3. ``call.transcript`` when it is raw text (parsed)
4. ``call.messages``
5. ``call.conversation``
6. the first artifact carrying a structured ``transcript``
7. the first artifact whose ``content`` looks like a transcript (parsed)
"""

import re
from typing import List, Optional

from vapi.voice.models import Call, Message

ASSISTANT_ROLE = "assistant"
USER_ROLE = "user"

# Marker followed by ":" / whitespace / end of line, e.g. "AI: hi", "User hello", "BOT"
_SPEAKER_RE = re.compile(
    r"^(?P<marker>ai|bot|assistant|user|client)(?=[:\s]|$)\s*:?\s*(?P<text>.*)$",
    re.IGNORECASE,
)
_ROLE_BY_MARKER = {
    "ai": ASSISTANT_ROLE,
    "bot": ASSISTANT_ROLE,
    "assistant": ASSISTANT_ROLE,
    "user": USER_ROLE,
    "client": USER_ROLE,
}
_ARTIFACT_MARKERS = ("Transcript", "AI", "User")


def parse_transcript_text(content: str) -> List[Message]:
    """
    Parse a raw ``"AI: ...\\nUser: ..."`` transcript into turns.

    A leading banner line containing "Transcript" is skipped, lines before the
    first speaker marker are dropped and continuation lines are joined to the
    current turn with a single space.

    :param content: Raw transcript text.
    :return: Ordered list of turns; empty when nothing recognizable is found.
    """
    lines = content.strip().splitlines()
    if lines and "Transcript" in lines[0]:
        lines = lines[1:]

    turns: List[Message] = []
    role: Optional[str] = None
    parts: List[str] = []

    def flush() -> None:
        text = " ".join(parts).strip()
        if role and text:
            turns.append(Message(role=role, text=text))

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        match = _SPEAKER_RE.match(line)
        if match:
            flush()
            role = _ROLE_BY_MARKER[match.group("marker").lower()]
            text = match.group("text").strip()
            parts = [text] if text else []
        elif role:
            parts.append(line)

    flush()
    return turns


def extract_transcript(call: Call) -> List[Message]:
    """Return the highest-precedence non-empty transcript of ``call`` (or [])."""
    if call.analysis and call.analysis.transcript:
        return list(call.analysis.transcript)

    if isinstance(call.transcript, list) and call.transcript:
        return list(call.transcript)

    if isinstance(call.transcript, str) and call.transcript.strip():
        parsed = parse_transcript_text(call.transcript)
        if parsed:
            return parsed

    if call.messages:
        return list(call.messages)

    if call.conversation:
        return list(call.conversation)

    artifacts = call.artifacts or []
    for artifact in artifacts:
        if artifact.transcript:
            return list(artifact.transcript)

    for artifact in artifacts:
        if artifact.content and any(m in artifact.content for m in _ARTIFACT_MARKERS):
            parsed = parse_transcript_text(artifact.content)
            if parsed:
                return parsed

    return []
