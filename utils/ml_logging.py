import json
import logging
import os
from typing import Optional

from colorama import Fore, Style
from colorama import init as colorama_init
from dotenv import load_dotenv
from opentelemetry import trace

# Early .env load so LOG_LEVEL / ENV are visible to the first get_logger() call
if os.path.isfile(".env"):
    load_dotenv(override=False)

colorama_init(autoreset=True)

# Define a new logging level named "KEYINFO" with a level of 25
KEYINFO_LEVEL_NUM = 25
logging.addLevelName(KEYINFO_LEVEL_NUM, "KEYINFO")


def keyinfo(self: logging.Logger, message, *args, **kws):
    if self.isEnabledFor(KEYINFO_LEVEL_NUM):
        self._log(KEYINFO_LEVEL_NUM, message, args, **kws)


logging.Logger.keyinfo = keyinfo

# Span attribute prefixes copied onto log records for correlation
_CORRELATION_PREFIXES = ("call.", "assistant.", "event.", "operation.")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "name": record.name,
            "process": record.processName,
            "level": record.levelname,
            "trace_id": getattr(record, "trace_id", "-"),
            "span_id": getattr(record, "span_id", "-"),
            "call_id": getattr(record, "call_id", "-"),
            "assistant_id": getattr(record, "assistant_id", "-"),
            "event_type": getattr(record, "event_type", "-"),
            "operation_name": getattr(record, "operation_name", "-"),
            "message": record.getMessage(),
            "file": record.filename,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


class PrettyFormatter(logging.Formatter):
    LEVEL_COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.MAGENTA,
        "KEYINFO": Fore.BLUE,
    }

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname
        color = self.LEVEL_COLORS.get(level, "")
        line = (
            f"{Fore.WHITE}[{timestamp}]{Style.RESET_ALL} {color}{level}{Style.RESET_ALL}"
            f" - {Fore.BLUE}{record.name}{Style.RESET_ALL}: {record.getMessage()}"
        )
        call_id = getattr(record, "call_id", "-")
        if call_id != "-":
            line += f" {Fore.WHITE}(call={call_id}){Style.RESET_ALL}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class TraceLogFilter(logging.Filter):
    """Stamp every record with the active span's trace/span ids and call correlation ids."""

    def filter(self, record):
        span = trace.get_current_span()
        context = span.get_span_context() if span else None
        record.trace_id = (
            f"{context.trace_id:032x}" if context and context.trace_id else "-"
        )
        record.span_id = (
            f"{context.span_id:016x}" if context and context.span_id else "-"
        )

        attributes = {}
        if span is not None and span.is_recording():
            attributes = getattr(span, "attributes", None) or {}

        record.call_id = getattr(record, "call_id", attributes.get("call.id", "-"))
        record.assistant_id = getattr(
            record, "assistant_id", attributes.get("assistant.id", "-")
        )
        record.event_type = getattr(
            record, "event_type", attributes.get("event.type", "-")
        )
        record.operation_name = attributes.get(
            "operation.name", getattr(span, "name", "-") if attributes else "-"
        )
        return True


def set_span_correlation_attributes(
    call_id: Optional[str] = None,
    assistant_id: Optional[str] = None,
    event_type: Optional[str] = None,
    operation_name: Optional[str] = None,
    custom_attributes: Optional[dict] = None,
) -> None:
    """
    Set correlation attributes on the current span so that log lines emitted
    inside it carry the same identifiers.

    Args:
        call_id: VAPI call id
        assistant_id: VAPI assistant id
        event_type: Event type being published or handled
        operation_name: Name of the current operation
        custom_attributes: Additional attributes; only keys with a known
            correlation prefix and primitive values are kept
    """
    span = trace.get_current_span()
    if not span or not span.is_recording():
        return

    if call_id:
        span.set_attribute("call.id", call_id)
    if assistant_id:
        span.set_attribute("assistant.id", assistant_id)
    if event_type:
        span.set_attribute("event.type", event_type)
    if operation_name:
        span.set_attribute("operation.name", operation_name)

    for key, value in (custom_attributes or {}).items():
        if key.startswith(_CORRELATION_PREFIXES) and isinstance(
            value, (str, int, float, bool)
        ):
            span.set_attribute(key, value)


def _resolve_level(level: Optional[int]) -> int:
    if level is not None:
        return level
    resolved = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def get_logger(
    name: str = "vapi",
    level: Optional[int] = None,
    include_stream_handler: bool = True,
) -> logging.Logger:
    logger = logging.getLogger(name)

    if level is not None or logger.level == 0:
        logger.setLevel(_resolve_level(level))

    is_production = os.environ.get("ENV", "dev").lower() == "prod"

    if not any(isinstance(f, TraceLogFilter) for f in logger.filters):
        logger.addFilter(TraceLogFilter())

    if include_stream_handler and not any(
        isinstance(h, logging.StreamHandler) for h in logger.handlers
    ):
        sh = logging.StreamHandler()
        sh.setFormatter(JsonFormatter() if is_production else PrettyFormatter())
        sh.addFilter(TraceLogFilter())
        logger.addHandler(sh)

    return logger
