from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from vapi.api.app import create_app
from vapi.api.receiver import WebhookReceiver
from vapi.api.schemas.webhook import (
    EndOfCallReportMessage,
    GenericServerMessage,
    WebhookAction,
    parse_server_message,
)
from vapi.events.types import EventSources, EventTypes, WebhookReceivedData
from vapi.exceptions import BrokerError, CallProcessingError

END_OF_CALL = {
    "message": {
        "type": "end-of-call-report",
        "call": {"id": "call-1", "assistantId": "asst-1"},
    }
}
STATUS_UPDATE = {"message": {"type": "status-update", "status": "in-progress"}}


@pytest.fixture
def bus():
    bus = MagicMock()
    bus.publish = AsyncMock()
    return bus


@pytest.fixture
def processor():
    processor = MagicMock()
    processor.process = AsyncMock()
    return processor


def _client(receiver: WebhookReceiver) -> TestClient:
    return TestClient(create_app(receiver))


class TestParseServerMessage:
    def test_end_of_call_report_is_typed(self):
        message = parse_server_message(END_OF_CALL["message"])
        assert isinstance(message, EndOfCallReportMessage)
        assert message.call.id == "call-1"

    def test_other_messages_are_generic(self):
        message = parse_server_message(STATUS_UPDATE["message"])
        assert isinstance(message, GenericServerMessage)
        assert message.type == "status-update"

    def test_malformed_end_of_call_report(self):
        with pytest.raises(CallProcessingError):
            parse_server_message({"type": "end-of-call-report", "call": 5})


class TestWebhookEndpoints:
    def test_health(self, bus):
        response = _client(WebhookReceiver(bus)).get("/webhooks/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_message_is_accepted_and_ignored(self, bus):
        response = _client(WebhookReceiver(bus)).post("/webhooks/vapi", json={"foo": "bar"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "action": "ignored"}
        bus.publish.assert_not_awaited()

    def test_message_republished_without_processor(self, bus):
        response = _client(WebhookReceiver(bus)).post("/webhooks/vapi", json=STATUS_UPDATE)

        assert response.status_code == 200
        assert response.json()["action"] == WebhookAction.PUBLISHED.value
        bus.publish.assert_awaited_once()
        event = bus.publish.await_args.args[0]
        assert event.type == EventTypes.WEBHOOK_RECEIVED
        assert event.source == EventSources.WEBHOOK
        assert isinstance(event.data, WebhookReceivedData)
        assert event.data.message == STATUS_UPDATE["message"]
        assert event.get_metadata("message_type") == "status-update"

    def test_end_of_call_report_goes_to_processor(self, bus, processor):
        response = _client(WebhookReceiver(bus, processor)).post(
            "/webhooks/voice", json=END_OF_CALL
        )

        assert response.status_code == 200
        assert response.json()["action"] == "processed"
        processor.process.assert_awaited_once()
        report = processor.process.await_args.args[0]
        assert isinstance(report, EndOfCallReportMessage)
        assert report.call.assistant_id == "asst-1"
        bus.publish.assert_not_awaited()

    def test_other_messages_ignored_when_processor_configured(self, bus, processor):
        response = _client(WebhookReceiver(bus, processor)).post(
            "/webhooks/vapi", json=STATUS_UPDATE
        )

        assert response.json()["action"] == "ignored"
        processor.process.assert_not_awaited()
        bus.publish.assert_not_awaited()

    def test_processing_failure_returns_500(self, bus, processor):
        processor.process.side_effect = CallProcessingError("no call ID in end-of-call-report")

        response = _client(WebhookReceiver(bus, processor)).post(
            "/webhooks/vapi", json=END_OF_CALL
        )

        assert response.status_code == 500
        assert response.json() == {"error": "no call ID in end-of-call-report"}

    def test_publish_failure_returns_500(self, bus):
        bus.publish.side_effect = BrokerError("redis down")

        response = _client(WebhookReceiver(bus)).post("/webhooks/vapi", json=STATUS_UPDATE)

        assert response.status_code == 500
        assert "redis down" in response.json()["error"]

    def test_invalid_json_returns_400(self, bus):
        response = _client(WebhookReceiver(bus)).post(
            "/webhooks/vapi",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        bus.publish.assert_not_awaited()

    def test_non_object_body_returns_400(self, bus):
        response = _client(WebhookReceiver(bus)).post("/webhooks/vapi", json=[1, 2])
        assert response.status_code == 400


class TestWebhookReceiver:
    @pytest.mark.asyncio
    async def test_no_bus_and_no_processor_ignores(self):
        action = await WebhookReceiver().handle(STATUS_UPDATE)
        assert action is WebhookAction.IGNORED
