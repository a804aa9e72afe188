import logging
import os
from typing import Optional

from dotenv import load_dotenv
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

# Ensure environment variables from .env are available BEFORE we check DISABLE_CLOUD_TELEMETRY.
if os.path.isfile(".env"):
    load_dotenv(override=False)

logger = logging.getLogger(__name__)
_telemetry_configured = False


def setup_telemetry(service_name: Optional[str] = None) -> Optional[TracerProvider]:
    """
    Install an OpenTelemetry SDK tracer provider for the webhook service.

    Spans are only exported when ``OTEL_CONSOLE_EXPORTER=true``; otherwise the
    provider still produces real trace/span ids so log correlation works.

    :param service_name: Overrides ``OTEL_SERVICE_NAME`` for the resource.
    :return: The installed provider, or None when telemetry is disabled or a
        provider was already installed.
    """
    global _telemetry_configured

    if os.getenv("DISABLE_CLOUD_TELEMETRY", "false").lower() == "true":
        logger.info("Telemetry disabled (DISABLE_CLOUD_TELEMETRY=true) - skipping setup")
        return None

    if _telemetry_configured:
        logger.debug("Tracer provider already configured")
        return None

    resource_attrs = {
        "service.name": service_name or os.getenv("OTEL_SERVICE_NAME", "vapi-webhooks"),
        "service.namespace": "vapi",
    }
    env_name = os.getenv("ENVIRONMENT")
    if env_name:
        resource_attrs["service.environment"] = env_name

    provider = TracerProvider(resource=Resource.create(resource_attrs))
    if os.getenv("OTEL_CONSOLE_EXPORTER", "false").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _telemetry_configured = True
    logger.info(f"Tracer provider configured with resource attributes: {resource_attrs}")
    return provider
