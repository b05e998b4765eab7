"""
Vigil Execution Outcomes

The closed result type of ``execute_tool_call``: exactly one of
success, pending approval, or failure, discriminated on ``kind``.
Every variant carries the id of its audit event and the call duration.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from vigil.core.models import ErrorCode, RiskLevel

SENSITIVE_KEYS = ("password", "token", "secret", "key", "auth")
MAX_DISPLAY_LENGTH = 200
REDACTED = "[REDACTED]"


class ExecutionError(BaseModel):
    """Structured failure payload."""
    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None
    retryable: bool = False


class ApprovalSummary(BaseModel):
    """What the user sees when asked to approve an action."""
    tool_name: str
    action_description: str
    risk_level: RiskLevel
    reasoning: str = ""
    key_parameters: dict[str, Any] = Field(default_factory=dict)


class ExecutionSuccess(BaseModel):
    kind: Literal["success"] = "success"
    result: Any = None
    approval_required: Literal[False] = False
    audit_log_id: str
    duration_ms: float


class PendingApproval(BaseModel):
    kind: Literal["pending_approval"] = "pending_approval"
    approval_required: Literal[True] = True
    approval_id: str
    expires_at: datetime
    approval_summary: ApprovalSummary
    audit_log_id: str
    duration_ms: float


class ExecutionFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    error: ExecutionError
    audit_log_id: str
    duration_ms: float


ExecutionOutcome = Annotated[
    Union[ExecutionSuccess, PendingApproval, ExecutionFailure],
    Field(discriminator="kind"),
]

outcome_adapter: TypeAdapter[ExecutionOutcome] = TypeAdapter(ExecutionOutcome)


def sanitize_parameters(params: Mapping[str, Any]) -> dict[str, Any]:
    """Parameters safe to display: secrets redacted, long strings truncated."""
    sanitized: dict[str, Any] = {}
    for key, value in params.items():
        if any(marker in str(key).lower() for marker in SENSITIVE_KEYS):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = _sanitize_value(value)
    return sanitized


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_DISPLAY_LENGTH:
        return value[:MAX_DISPLAY_LENGTH] + "..."
    if isinstance(value, Mapping):
        return sanitize_parameters(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item) for item in value]
    return value
