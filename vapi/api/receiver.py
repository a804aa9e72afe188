from typing import Any, Dict, Optional

from utils.ml_logging import get_logger
from vapi.api.schemas.webhook import (
    END_OF_CALL_REPORT,
    WebhookAction,
    parse_server_message,
)
from vapi.events.bus import EventBus
from vapi.events.types import Event, EventSources, EventTypes, WebhookReceivedData
from vapi.voice.processor import CallProcessor

logger = get_logger("vapi.api.receiver")


class WebhookReceiver:
    """
    Routes VAPI webhook envelopes.

    - no ``message`` object: accepted, nothing happens
    - ``end-of-call-report`` with a processor: handed to the CallProcessor
    - anything else without a processor: republished as ``vapi.webhook.received``
    - anything else with a processor: accepted, nothing happens

    Holds only references to the bus and the processor; safe to share between
    concurrent requests.
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        processor: Optional[CallProcessor] = None,
    ):
        self.event_bus = event_bus
        self.processor = processor

    async def handle(self, envelope: Dict[str, Any]) -> WebhookAction:
        """
        Handle one webhook body.

        :param envelope: Decoded JSON object posted by VAPI.
        :return: What was done with it.
        :raises VapiError: When processing or publishing fails.
        """
        message = envelope.get("message")
        if not isinstance(message, dict):
            logger.debug("Webhook without message object, ignoring")
            return WebhookAction.IGNORED

        message_type = message.get("type")

        if message_type == END_OF_CALL_REPORT and self.processor is not None:
            await self.processor.process(parse_server_message(message))
            return WebhookAction.PROCESSED

        if self.processor is None and self.event_bus is not None:
            event = Event.create(
                EventTypes.WEBHOOK_RECEIVED,
                EventSources.WEBHOOK,
                WebhookReceivedData.model_validate(envelope),
            )
            event.add_metadata("message_type", message_type)
            await self.event_bus.publish(event)
            logger.debug(f"Republished webhook message {message_type} as {event.id}")
            return WebhookAction.PUBLISHED

        logger.debug(f"No action for webhook message type {message_type}")
        return WebhookAction.IGNORED
