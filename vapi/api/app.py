from fastapi import FastAPI

from utils.ml_logging import get_logger
from vapi import __version__
from vapi.api.receiver import WebhookReceiver
from vapi.api.router import api_router

logger = get_logger("vapi.api.app")


def create_app(receiver: WebhookReceiver) -> FastAPI:
    """Create the webhook FastAPI app bound to ``receiver``."""
    app = FastAPI(
        title="VAPI Webhook Receiver",
        description="Receives VAPI server messages and republishes them on the event bus.",
        version=__version__,
        openapi_tags=[
            {"name": "Webhooks", "description": "VAPI server-message callbacks"},
            {"name": "Health", "description": "Liveness of the webhook receiver"},
        ],
    )
    app.state.webhook_receiver = receiver
    app.include_router(api_router)
    logger.debug("Webhook app created")
    return app
