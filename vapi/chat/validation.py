from typing import Optional

from vapi.chat.types import CreateChatRequest
from vapi.exceptions import (
    ConflictingChatTargetError,
    MissingChatTargetError,
    MissingInputError,
    MissingParameterError,
    NameTooLongError,
)

MAX_CHAT_NAME_LENGTH = 40


def validate_chat_request(req: Optional[CreateChatRequest]) -> None:
    """
    Check a chat request before it is sent.

    :param req: The request to check.
    :raises MissingParameterError: When ``req`` is None.
    :raises MissingInputError: When the input is absent or empty.
    :raises MissingChatTargetError: When no assistant, session or previous chat is given.
    :raises ConflictingChatTargetError: When both a session and a previous chat are given.
    :raises NameTooLongError: When the name exceeds 40 characters.
    """
    if req is None:
        raise MissingParameterError("request")

    if req.input is None or len(req.input) == 0:
        raise MissingInputError()

    if (
        req.assistant_id is None
        and req.assistant is None
        and req.session_id is None
        and req.previous_chat_id is None
    ):
        raise MissingChatTargetError()

    if req.session_id is not None and req.previous_chat_id is not None:
        raise ConflictingChatTargetError()

    if req.name is not None and len(req.name) > MAX_CHAT_NAME_LENGTH:
        raise NameTooLongError(MAX_CHAT_NAME_LENGTH)
