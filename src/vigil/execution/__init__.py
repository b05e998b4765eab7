"""Vigil execution: the orchestrator, its outcome types, and the result formatter."""

from vigil.execution.formatter import FormattedExecutionResult, format_execution_result
from vigil.execution.orchestrator import ToolExecutionOrchestrator, is_transient_error
from vigil.execution.outcomes import (
    ApprovalSummary,
    ExecutionError,
    ExecutionFailure,
    ExecutionOutcome,
    ExecutionSuccess,
    PendingApproval,
    sanitize_parameters,
)

__all__ = [
    "ApprovalSummary",
    "ExecutionError",
    "ExecutionFailure",
    "ExecutionOutcome",
    "ExecutionSuccess",
    "FormattedExecutionResult",
    "PendingApproval",
    "ToolExecutionOrchestrator",
    "format_execution_result",
    "is_transient_error",
    "sanitize_parameters",
]
