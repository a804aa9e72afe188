"""
Webhook Endpoints
=================

VAPI server-message callbacks. ``/webhooks/vapi`` and ``/webhooks/voice``
are handled identically; ``/webhooks/health`` always answers 200.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from utils.ml_logging import get_logger
from vapi.api.receiver import WebhookReceiver
from vapi.api.schemas.webhook import WebhookHealthResponse, WebhookResponse
from vapi.enums.monitoring import SpanAttr

logger = get_logger("vapi.api.webhooks")
tracer = trace.get_tracer(__name__)

router = APIRouter()

_WEBHOOK_RESPONSES = {
    200: {
        "description": "Webhook accepted",
        "content": {"application/json": {"example": {"status": "ok", "action": "processed"}}},
    },
    400: {
        "description": "Body is not a JSON object",
        "content": {"application/json": {"example": {"error": "invalid JSON body"}}},
    },
    500: {
        "description": "Processing failed; the provider is expected to retry",
        "content": {
            "application/json": {"example": {"error": "no call ID in end-of-call-report"}}
        },
    },
}


async def _receive(request: Request, route: str):
    receiver: WebhookReceiver = request.app.state.webhook_receiver

    try:
        payload = await request.json()
    except ValueError:
        logger.warning(f"Rejected webhook on {route}: body is not valid JSON")
        return JSONResponse({"error": "invalid JSON body"}, status_code=400)
    if not isinstance(payload, dict):
        return JSONResponse({"error": "webhook body must be a JSON object"}, status_code=400)

    message = payload.get("message")
    message_type = message.get("type") if isinstance(message, dict) else None

    with tracer.start_as_current_span(
        "webhooks.receive",
        kind=SpanKind.SERVER,
        attributes={
            SpanAttr.OPERATION_NAME.value: route,
            SpanAttr.WEBHOOK_MESSAGE_TYPE.value: message_type or "-",
        },
    ) as span:
        try:
            action = await receiver.handle(payload)
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            logger.error(f"Failed to process webhook {message_type} on {route}: {exc}")
            return JSONResponse({"error": str(exc)}, status_code=500)
        span.set_attribute(SpanAttr.WEBHOOK_ACTION.value, action.value)

    return WebhookResponse(action=action)


@router.post(
    "/vapi",
    response_model=WebhookResponse,
    summary="Handle VAPI Server Messages",
    description="""
    Receive VAPI server messages.

    End-of-call reports are processed into a call-completed event when a call
    processor is configured; without one, every message is republished on the
    event bus as `vapi.webhook.received`. Bodies without a `message` object are
    accepted and ignored.
    """,
    tags=["Webhooks"],
    responses=_WEBHOOK_RESPONSES,
)
async def vapi_webhook(request: Request):
    return await _receive(request, "/webhooks/vapi")


@router.post(
    "/voice",
    response_model=WebhookResponse,
    summary="Handle Voice Server Messages",
    description="Alias of `/webhooks/vapi` with identical handling.",
    tags=["Webhooks"],
    responses=_WEBHOOK_RESPONSES,
)
async def voice_webhook(request: Request):
    return await _receive(request, "/webhooks/voice")


@router.get(
    "/health",
    response_model=WebhookHealthResponse,
    summary="Webhook Receiver Health",
    tags=["Health"],
)
async def webhook_health() -> WebhookHealthResponse:
    return WebhookHealthResponse(timestamp=time.time())

