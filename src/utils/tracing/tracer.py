"""
Tracer initialization for OpenTelemetry.

Spans are exported over OTLP gRPC only when an endpoint is configured;
otherwise the tracer provider records nothing and spans cost almost
nothing inside the record loop.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_tracer: trace.Tracer | None = None
_is_initialized = False


def initialize_tracing(
    service_name: str = "db-migrator",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Initialize distributed tracing.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (default: OTLP_ENDPOINT env var)
        console_export: Also print finished spans to the console

    Returns:
        Configured tracer instance
    """
    global _tracer, _is_initialized

    if _is_initialized:
        logger.warning("Tracing already initialized, returning existing tracer")
        return _tracer

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    exporters = []

    endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )
        exporters.append("OTLP")
        logger.info(f"OTLP exporter configured: {endpoint}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)
    _is_initialized = True

    logger.debug(f"Tracing initialized: {service_name} (exporters: {', '.join(exporters) or 'none'})")
    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Get the tracer used by ``trace_operation``.

    Falls back to the globally registered provider, which is a no-op until
    ``initialize_tracing`` runs.
    """
    if _tracer is not None:
        return _tracer
    return trace.get_tracer("db-migrator")


def shutdown_tracing() -> None:
    """Flush pending spans; call before application exit."""
    global _is_initialized, _tracer

    if not _is_initialized:
        return
    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()
    _is_initialized = False
    _tracer = None
    logger.info("Tracing shutdown complete")
