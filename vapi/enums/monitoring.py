from enum import Enum


# Span attribute keys for OpenTelemetry spans and log correlation
class SpanAttr(str, Enum):
    OPERATION_NAME = "operation.name"
    ERROR_TYPE = "error.type"

    # Events
    EVENT_ID = "event.id"
    EVENT_TYPE = "event.type"
    EVENT_SOURCE = "event.source"
    EVENT_CHANNEL = "event.channel"
    HANDLER_NAME = "event.handler"
    HANDLER_ATTEMPT = "event.handler.attempt"

    # Webhooks
    WEBHOOK_MESSAGE_TYPE = "webhook.message_type"
    WEBHOOK_ACTION = "webhook.action"

    # Outbound HTTP
    HTTP_METHOD = "http.method"
    HTTP_URL = "http.url"
    HTTP_STATUS_CODE = "http.status_code"
    PEER_SERVICE = "peer.service"

    # Redis
    DB_SYSTEM = "db.system"
    DB_OPERATION = "db.operation"
    NET_PEER_NAME = "net.peer.name"
    NET_PEER_PORT = "net.peer.port"
