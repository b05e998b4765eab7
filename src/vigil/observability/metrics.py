"""OpenTelemetry metrics for Vigil.

Counters and histograms for tool calls and approval decisions. With no
MeterProvider configured, the OpenTelemetry API hands out no-op
instruments.
"""

from __future__ import annotations

from opentelemetry import metrics

from vigil import __version__

_meter = None
_tool_calls_total = None
_tool_call_duration = None
_approvals_decided = None


def _ensure_meter() -> None:
    """Lazily create the meter and instruments."""
    global _meter, _tool_calls_total, _tool_call_duration, _approvals_decided

    if _meter is not None:
        return

    _meter = metrics.get_meter("vigil", __version__)
    _tool_calls_total = _meter.create_counter(
        "vigil.tool_calls.total",
        description="Tool call attempts by outcome",
        unit="1",
    )
    _tool_call_duration = _meter.create_histogram(
        "vigil.tool_call.duration_seconds",
        description="Orchestrator time per tool call, including approval creation",
        unit="s",
    )
    _approvals_decided = _meter.create_counter(
        "vigil.approvals.decided",
        description="Approval decisions by result",
        unit="1",
    )


def record_tool_call(*, tool_name: str, outcome: str, risk_level: str = "unknown") -> None:
    """Count one tool call attempt."""
    _ensure_meter()
    _tool_calls_total.add(
        1,
        {"vigil.tool_name": tool_name, "vigil.outcome": outcome, "vigil.risk_level": risk_level},
    )


def record_tool_call_duration(*, tool_name: str, duration_seconds: float, outcome: str) -> None:
    _ensure_meter()
    _tool_call_duration.record(
        duration_seconds,
        {"vigil.tool_name": tool_name, "vigil.outcome": outcome},
    )


def record_approval_decision(*, tool_name: str, decision: str, status: str) -> None:
    """Count one approve/reject decision and the status it ended in."""
    _ensure_meter()
    _approvals_decided.add(
        1,
        {"vigil.tool_name": tool_name, "vigil.decision": decision, "vigil.status": status},
    )
