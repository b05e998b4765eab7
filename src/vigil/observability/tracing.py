"""OpenTelemetry tracing setup for Vigil.

Installs an OTLP exporter when OTEL_EXPORTER_OTLP_ENDPOINT is set.
Without an endpoint the OpenTelemetry API's default no-op provider is
used, so spans cost next to nothing.
"""

from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.trace import Tracer

from vigil import __version__
from vigil.logging import get_logger

logger = get_logger("vigil.observability")

_initialized = False
_provider = None


def init_tracing(
    endpoint: str | None = None,
    service_name: str | None = None,
) -> bool:
    """Initialize OpenTelemetry tracing.

    Args:
        endpoint: OTLP endpoint URL. Falls back to OTEL_EXPORTER_OTLP_ENDPOINT env var.
        service_name: Service name for traces. Falls back to OTEL_SERVICE_NAME env var.

    Returns:
        True if an exporter was installed, False if skipped (no endpoint).
    """
    global _initialized, _provider

    if _initialized:
        return _provider is not None

    _initialized = True

    endpoint = endpoint or os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        return False

    service_name = service_name or os.environ.get("OTEL_SERVICE_NAME", "vigil")

    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        raise ImportError(
            "OTLP export requires the OpenTelemetry SDK. Install with: pip install 'vigil[otel]'"
        ) from None

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("OpenTelemetry tracing exporting to %s", endpoint)
    return True


def get_tracer() -> Tracer:
    """The Vigil tracer (no-op unless a provider has been installed)."""
    return trace.get_tracer("vigil", __version__)


def shutdown() -> None:
    """Flush and shut down the tracer provider installed by ``init_tracing``."""
    global _initialized, _provider
    if _provider is not None:
        _provider.shutdown()
    _provider = None
    _initialized = False
