from typing import Any, Dict, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from pydantic import ValidationError

from utils.ml_logging import get_logger, set_span_correlation_attributes
from vapi.enums.monitoring import SpanAttr
from vapi.events.bus import EventBus
from vapi.events.types import Event, EventSources, EventTypes
from vapi.exceptions import CallProcessingError, VapiError
from vapi.voice.client import VapiClient
from vapi.voice.models import EndOfCallReport, ProcessedCall

logger = get_logger("vapi.voice.processor")
tracer = trace.get_tracer(__name__)


class CallProcessor:
    """
    Turns end-of-call reports into ProcessedCall records.

    For each report the full call is fetched from the API, its transcript is
    extracted and a ``vapi.call.completed`` event is published. Nothing is
    retried or queued: a failure is raised to the caller (the webhook answers
    500 and the provider retries).
    """

    def __init__(self, client: VapiClient, event_bus: Optional[EventBus] = None):
        self.client = client
        self.event_bus = event_bus
        self._stats = {"reports_processed": 0, "reports_failed": 0}

    async def process(
        self, report: Union[EndOfCallReport, Dict[str, Any]]
    ) -> ProcessedCall:
        """
        Process one end-of-call report.

        :param report: The ``message`` object of the webhook, typed or raw.
        :return: The processed call that was published.
        :raises CallProcessingError: When the report lacks call/assistant ids.
        :raises VapiError: When fetching the call or publishing fails.
        """
        with tracer.start_as_current_span(
            "call_processor.process", kind=SpanKind.INTERNAL
        ) as span:
            try:
                processed = await self._process(report)
            except VapiError as exc:
                self._stats["reports_failed"] += 1
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                span.set_attribute(SpanAttr.ERROR_TYPE.value, type(exc).__name__)
                logger.error(f"Failed to process end-of-call report: {exc}")
                raise
            self._stats["reports_processed"] += 1
            return processed

    async def _process(
        self, report: Union[EndOfCallReport, Dict[str, Any]]
    ) -> ProcessedCall:
        if not isinstance(report, EndOfCallReport):
            try:
                report = EndOfCallReport.model_validate(report)
            except ValidationError as exc:
                raise CallProcessingError(f"malformed end-of-call-report: {exc}") from exc

        if report.call is None:
            raise CallProcessingError("no call data in end-of-call-report")
        call_id = report.call.id
        if not call_id:
            raise CallProcessingError("no call ID in end-of-call-report")
        assistant_id = report.call.assistant_id
        if not assistant_id:
            raise CallProcessingError("no assistant ID in end-of-call-report")

        set_span_correlation_attributes(
            call_id=call_id,
            assistant_id=assistant_id,
            operation_name="process_end_of_call_report",
        )

        call = await self.client.get_call(call_id)
        transcript = self.client.extract_transcript(call)
        processed = ProcessedCall.from_call(call_id, assistant_id, transcript, call)

        if self.event_bus is not None:
            event = Event.create(
                EventTypes.CALL_COMPLETED, EventSources.PROCESSOR, processed
            )
            await self.event_bus.publish(event)

        logger.info(
            f"Processed call {call_id}: {len(processed.transcript)} transcript turn(s), "
            f"status={processed.status}"
        )
        return processed

    def get_stats(self) -> Dict[str, Any]:
        return dict(self._stats)
