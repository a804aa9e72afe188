"""
VAPI Library Exceptions
=======================

Error taxonomy shared by the REST clients, the event bus, the webhook
receiver and the library lifecycle.
"""

from typing import Optional


class VapiError(Exception):
    """Base class for every error raised by this package."""


# ==============================================================================
# VALIDATION
# ==============================================================================


class RequestValidationError(VapiError, ValueError):
    """A request was rejected locally before any network call."""


class MissingInputError(RequestValidationError):
    def __init__(self, message: str = "input is required"):
        super().__init__(message)


class MissingChatTargetError(RequestValidationError):
    def __init__(
        self,
        message: str = "at least one of assistantId, assistant, sessionId, or previousChatId is required",
    ):
        super().__init__(message)


class ConflictingChatTargetError(RequestValidationError):
    def __init__(
        self, message: str = "sessionId and previousChatId are mutually exclusive"
    ):
        super().__init__(message)


class NameTooLongError(RequestValidationError):
    def __init__(self, max_length: int = 40):
        super().__init__(f"name must be {max_length} characters or less")
        self.max_length = max_length


class MissingParameterError(RequestValidationError):
    def __init__(self, parameter: str):
        super().__init__(f"{parameter} is required")
        self.parameter = parameter


# ==============================================================================
# REMOTE API
# ==============================================================================


class TransportError(VapiError):
    """Connection, DNS or timeout failure talking to a remote endpoint."""


class APIError(VapiError):
    """Remote API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str, operation: Optional[str] = None):
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}API error (status {status_code}): {body}")
        self.status_code = status_code
        self.body = body
        self.operation = operation


class ResponseParseError(VapiError):
    """Malformed JSON in a response body, webhook body or stream frame."""


# ==============================================================================
# EVENTS / BROKER
# ==============================================================================


class BrokerError(VapiError):
    """Publish or subscribe failure on the pub/sub broker."""


class BrokerConnectionError(BrokerError, ConnectionError):
    """Broker unreachable while constructing the event bus."""


class EventSerializationError(VapiError):
    """An event could not be encoded for the wire."""


class UnsupportedBackendError(VapiError, ValueError):
    def __init__(self, backend: str):
        super().__init__(f"unsupported event backend: {backend}")
        self.backend = backend


# ==============================================================================
# PROCESSING / LIFECYCLE
# ==============================================================================


class CallProcessingError(VapiError):
    """An end-of-call report could not be turned into a processed call."""


class LifecycleError(VapiError, RuntimeError):
    """Start/stop requested from an incompatible lifecycle state."""
