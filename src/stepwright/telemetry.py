"""OpenTelemetry instrumentation for stepwright runs.

Each executed step is wrapped in a span by the interpreter. Without
``init_telemetry`` (or with ``OTEL_ENABLED=false``) the tracer returned by
``get_tracer`` is the API's no-op tracer.
"""

import logging

from opentelemetry import trace

from .config.settings import settings

logger = logging.getLogger(__name__)

TRACER_NAME = "stepwright"


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def init_telemetry() -> None:
    """Initialize OpenTelemetry tracing if enabled.

    Sets up a TracerProvider with a gRPC OTLP exporter pointed at
    ``OTEL_EXPORTER_OTLP_ENDPOINT``.
    """
    if not settings.otel_enabled:
        logger.debug("OpenTelemetry tracing disabled (OTEL_ENABLED=false)")
        return

    if not settings.otel_exporter_otlp_endpoint:
        logger.warning(
            "OTEL_ENABLED=true but OTEL_EXPORTER_OTLP_ENDPOINT not set. "
            "Skipping OpenTelemetry initialization."
        )
        return

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        logger.error(
            f"OpenTelemetry packages not installed: {e}. "
            "Install with: pip install 'stepwright[telemetry]'"
        )
        return

    resource = Resource.create({SERVICE_NAME: settings.otel_service_name})
    provider = TracerProvider(resource=resource)
    exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    logger.info(
        f"OpenTelemetry initialized: service={settings.otel_service_name}, "
        f"endpoint={settings.otel_exporter_otlp_endpoint}"
    )


def shutdown_telemetry() -> None:
    """Flush and shut down the tracer provider, if one was installed."""
    if not settings.otel_enabled:
        return

    provider = trace.get_tracer_provider()
    shutdown = getattr(provider, "shutdown", None)
    if shutdown is None:
        return
    try:
        shutdown()
        logger.info("OpenTelemetry tracer provider shut down")
    except Exception as e:
        logger.warning(f"Error shutting down OpenTelemetry: {e}")
