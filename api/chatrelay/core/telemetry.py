"""
Telemetry module for OpenTelemetry + Application Insights.

Configures distributed tracing for the chat pipeline stages
(retrieval, context assembly, completion relay, notification).
"""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from chatrelay.core.errors import PipelineError

logger = logging.getLogger(__name__)

SERVICE_NAME = "retrieval-chat-relay"
SERVICE_NAMESPACE = "chatrelay"
SERVICE_VERSION = "0.1.0"

_tracer: trace.Tracer | None = None


def setup_telemetry(connection_string: str) -> None:
    """
    Initialize OpenTelemetry with an optional Application Insights exporter.

    Args:
        connection_string: Application Insights connection string.
                          If empty, spans are recorded but not exported.
    """
    global _tracer

    resource = Resource.create(
        {
            "service.name": SERVICE_NAME,
            "service.namespace": SERVICE_NAMESPACE,
            "service.version": SERVICE_VERSION,
        }
    )
    provider = TracerProvider(resource=resource)

    if connection_string:
        try:
            from azure.monitor.opentelemetry.exporter import (
                AzureMonitorTraceExporter,
            )

            exporter = AzureMonitorTraceExporter(
                connection_string=connection_string
            )
            provider.add_span_processor(BatchSpanProcessor(exporter))
            logger.info("Application Insights telemetry enabled.")
        except ImportError:
            logger.warning(
                "azure-monitor-opentelemetry-exporter not installed. "
                "Telemetry will not be exported."
            )
    else:
        logger.info("No connection string provided. Telemetry export disabled.")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(SERVICE_NAME, SERVICE_VERSION)


def get_tracer() -> trace.Tracer:
    """Return the application tracer, initializing a no-op if not set up."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SERVICE_NAME, SERVICE_VERSION)
    return _tracer


def record_pipeline_error(span: trace.Span, exc: PipelineError) -> None:
    """Mark a span as failed and tag it with the failing pipeline stage."""
    span.set_attribute("chatrelay.error_kind", type(exc).__name__)
    span.set_status(Status(StatusCode.ERROR, str(exc)))
