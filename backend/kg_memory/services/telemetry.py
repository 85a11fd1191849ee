"""OpenTelemetry tracing for the retrieval pipeline.

Without setup_telemetry the global no-op tracer is used, so spans cost
nothing in tests and embedded use.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

SERVICE_NAME = "kg-memory"
SERVICE_VERSION = "0.1.0"


def setup_telemetry(
    service_name: str = SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> TracerProvider:
    """Initialize OpenTelemetry with tracing.

    Args:
        service_name: Name of this service for traces.
        otlp_endpoint: OTLP collector endpoint (e.g., http://localhost:4317).
            Falls back to OTEL_EXPORTER_OTLP_ENDPOINT.
        console_export: Whether to also export spans to the console.

    Returns:
        Configured TracerProvider.
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": SERVICE_VERSION,
        }
    )
    provider = TracerProvider(resource=resource)

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    endpoint = otlp_endpoint or os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        logger.info(f"OTLP tracing enabled: {endpoint}")

    trace.set_tracer_provider(provider)
    logger.info(f"Telemetry initialized for {service_name}")
    return provider


def get_tracer(name: str = __name__) -> Tracer:
    return trace.get_tracer(name, SERVICE_VERSION)


@contextmanager
def traced_span(name: str, attributes: dict[str, Any] | None = None) -> Iterator[Span]:
    """Run a block inside a pipeline span; exceptions are recorded on the span."""
    tracer = get_tracer("kg-memory.pipeline")
    with tracer.start_as_current_span(name, attributes=attributes or {}) as span:
        yield span
