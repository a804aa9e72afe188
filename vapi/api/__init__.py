"""
Webhook API
===========

FastAPI application, receiver and uvicorn server for VAPI webhooks.
"""

from .app import create_app
from .receiver import WebhookReceiver
from .server import WebhookServer

__all__ = ["create_app", "WebhookReceiver", "WebhookServer"]
