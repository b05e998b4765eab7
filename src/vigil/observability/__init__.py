"""Vigil Observability: OpenTelemetry tracing and metrics.

Export is opt-in via OTEL_EXPORTER_OTLP_ENDPOINT. Without it, all
tracing/metrics calls hit the OpenTelemetry API's no-op providers.
"""

from vigil.observability.metrics import (
    record_approval_decision,
    record_tool_call,
    record_tool_call_duration,
)
from vigil.observability.tracing import get_tracer, init_tracing, shutdown

__all__ = [
    "get_tracer",
    "init_tracing",
    "record_approval_decision",
    "record_tool_call",
    "record_tool_call_duration",
    "shutdown",
]
