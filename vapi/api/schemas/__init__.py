"""
Webhook API schemas.
"""

from .webhook import (
    END_OF_CALL_REPORT,
    EndOfCallReportMessage,
    GenericServerMessage,
    ServerMessage,
    WebhookAction,
    WebhookHealthResponse,
    WebhookResponse,
    parse_server_message,
)

__all__ = [
    "END_OF_CALL_REPORT",
    "EndOfCallReportMessage",
    "GenericServerMessage",
    "ServerMessage",
    "WebhookAction",
    "WebhookHealthResponse",
    "WebhookResponse",
    "parse_server_message",
]
