from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from vapi.events.types import EventSources, EventTypes
from vapi.exceptions import APIError, CallProcessingError, ResponseParseError
from vapi.voice.models import Call, EndOfCallReport, Message, ProcessedCall
from vapi.voice.processor import CallProcessor
from vapi.voice.transcript import extract_transcript


def _report(**call_fields):
    return {"type": "end-of-call-report", "call": call_fields}


@pytest.fixture
def voice_client():
    client = MagicMock()
    client.get_call = AsyncMock(
        return_value=Call(
            id="call-1",
            assistant_id="asst-1",
            status="ended",
            duration=42.5,
            transcript="AI: Hello there\nUser: Hi",
        )
    )
    client.extract_transcript = MagicMock(side_effect=extract_transcript)
    return client


@pytest.fixture
def bus():
    bus = MagicMock()
    bus.publish = AsyncMock()
    return bus


class TestCallProcessor:
    @pytest.mark.asyncio
    async def test_processes_report_and_publishes_call_completed(self, voice_client, bus):
        processor = CallProcessor(voice_client, bus)

        processed = await processor.process(_report(id="call-1", assistantId="asst-1"))

        voice_client.get_call.assert_awaited_once_with("call-1")
        assert isinstance(processed, ProcessedCall)
        assert processed.id == "processed_call-1"
        assert processed.call_id == "call-1"
        assert processed.assistant_id == "asst-1"
        assert processed.duration == 42.5
        assert processed.status == "ended"
        assert [(t.role, t.text) for t in processed.transcript] == [
            ("assistant", "Hello there"),
            ("user", "Hi"),
        ]
        assert processed.created_at == processed.updated_at

        bus.publish.assert_awaited_once()
        event = bus.publish.await_args.args[0]
        assert event.type == EventTypes.CALL_COMPLETED
        assert event.source == EventSources.PROCESSOR
        assert event.data is processed
        assert processor.get_stats() == {"reports_processed": 1, "reports_failed": 0}

    @pytest.mark.asyncio
    async def test_accepts_typed_report(self, voice_client, bus):
        report = EndOfCallReport.model_validate(_report(id="call-1", assistantId="asst-1"))

        processed = await CallProcessor(voice_client, bus).process(report)

        assert processed.call_id == "call-1"

    @pytest.mark.asyncio
    async def test_works_without_event_bus(self, voice_client):
        processed = await CallProcessor(voice_client).process(
            _report(id="call-1", assistantId="asst-1")
        )
        assert processed.call_id == "call-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "report, message",
        [
            ({"type": "end-of-call-report"}, "no call data in end-of-call-report"),
            (_report(assistantId="asst-1"), "no call ID in end-of-call-report"),
            (_report(id="call-1"), "no assistant ID in end-of-call-report"),
        ],
    )
    async def test_rejects_incomplete_reports(self, voice_client, bus, report, message):
        processor = CallProcessor(voice_client, bus)

        with pytest.raises(CallProcessingError, match=message):
            await processor.process(report)

        voice_client.get_call.assert_not_awaited()
        bus.publish.assert_not_awaited()
        assert processor.get_stats()["reports_failed"] == 1

    @pytest.mark.asyncio
    async def test_rejects_malformed_report(self, voice_client, bus):
        with pytest.raises(CallProcessingError):
            await CallProcessor(voice_client, bus).process({"call": "not-an-object"})

    @pytest.mark.asyncio
    @patch("vapi.voice.processor.logger")
    async def test_fetch_failure_propagates_and_nothing_is_published(
        self, mock_logger, voice_client, bus
    ):
        voice_client.get_call.side_effect = APIError(404, "not found", "get_call")
        processor = CallProcessor(voice_client, bus)

        with pytest.raises(APIError):
            await processor.process(_report(id="call-1", assistantId="asst-1"))

        bus.publish.assert_not_awaited()
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_transcript_is_allowed(self, voice_client, bus):
        voice_client.get_call.return_value = Call(id="call-1", assistant_id="asst-1")

        processed = await CallProcessor(voice_client, bus).process(
            _report(id="call-1", assistantId="asst-1")
        )

        assert processed.transcript == []
        assert processed.duration == 0

    def test_processed_call_is_immutable(self):
        processed = ProcessedCall.from_call("c", "a", [Message(role="user", text="x")])
        with pytest.raises(ValidationError):
            processed.call_id = "other"

    @pytest.mark.asyncio
    async def test_role_less_messages_become_unknown_turns(self, voice_client, bus):
        voice_client.get_call.return_value = Call.model_validate(
            {"id": "call-1", "assistantId": "asst-1", "messages": [{"message": "hi"}]}
        )

        processed = await CallProcessor(voice_client, bus).process(
            _report(id="call-1", assistantId="asst-1")
        )

        assert [(t.role, t.text) for t in processed.transcript] == [("unknown", "hi")]

    @pytest.mark.asyncio
    @patch("vapi.voice.processor.logger")
    async def test_unparseable_call_is_counted_as_failure(self, mock_logger, voice_client, bus):
        voice_client.get_call.side_effect = ResponseParseError("get_call: unexpected response shape")
        processor = CallProcessor(voice_client, bus)

        with pytest.raises(ResponseParseError):
            await processor.process(_report(id="call-1", assistantId="asst-1"))

        assert processor.get_stats()["reports_failed"] == 1
        mock_logger.error.assert_called_once()
