"""
Vigil Core Data Models

Shared enums and request types used across the decision and execution
core. This module must have zero internal dependencies beyond pydantic
so every other component can import from it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Enums ───────────────────────────────────────────────────


class RiskLevel(str, Enum):
    """Static per-tool classification of real-world impact."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def is_high(self) -> bool:
        return self in (RiskLevel.HIGH, RiskLevel.CRITICAL)


class ToolCategory(str, Enum):
    """Grouping of tools used for category-level policy overrides."""
    QUERY = "query"
    COMPUTE = "compute"
    DRAFT = "draft"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXTERNAL = "external"


class ApprovalMode(str, Enum):
    """Governs whether a tool call needs human sign-off.

    - ALWAYS_APPROVE: every action needs explicit approval
    - HIGH_RISK_ONLY: only high/critical risk actions need approval
    - TRUST_CONFIDENT: auto-execute when confidence meets the threshold
    - FULL_AUTONOMY: never ask (the global high-risk override still applies)
    """
    ALWAYS_APPROVE = "always_approve"
    HIGH_RISK_ONLY = "high_risk_only"
    TRUST_CONFIDENT = "trust_confident"
    FULL_AUTONOMY = "full_autonomy"


class DeterminedBy(str, Enum):
    """Which rule produced an autonomy decision."""
    TOOL = "tool"
    CATEGORY = "category"
    QUIET_HOURS = "quiet_hours"
    DEFAULT = "default"
    HIGH_RISK = "high_risk"
    LOW_CONFIDENCE = "low_confidence"


class ApprovalStatus(str, Enum):
    """Lifecycle state of an approval record. Everything but PENDING is terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class DecisionAction(str, Enum):
    """What the upstream classifier asked for."""
    EXECUTE = "execute"
    REQUEST_APPROVAL = "request_approval"


class ApprovalDecision(str, Enum):
    """A human's answer to a pending approval."""
    APPROVE = "approve"
    REJECT = "reject"


class ErrorCode(str, Enum):
    """Stable failure codes surfaced on ExecutionFailure outcomes."""
    TOOL_NOT_FOUND = "tool_not_found"
    VALIDATION_FAILED = "validation_failed"
    INTEGRATION_MISSING = "integration_missing"
    EXECUTION_FAILED = "execution_failed"
    APPROVAL_EXPIRED = "approval_expired"
    APPROVAL_ALREADY_DECIDED = "approval_already_decided"
    APPROVAL_NOT_FOUND = "approval_not_found"


# ─── Execution Request ──────────────────────────────────────


class ExecutionContext(BaseModel):
    """Who is acting, and where in the conversation/plan the call came from."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    session_id: str | None = None
    conversation_id: str | None = None
    plan_id: str | None = None
    step_index: int | None = None


class ClassificationDecision(BaseModel):
    """Decision supplied by the upstream classifier for a candidate tool call."""
    action: DecisionAction = DecisionAction.EXECUTE
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    reasoning: str = ""


class ExecutionRequest(BaseModel):
    """A single tool-call attempt. Transient; the orchestrator's input."""
    id: str = Field(default_factory=lambda: f"req-{uuid.uuid4().hex[:8]}")
    tool_name: str
    parameters: Any = Field(default_factory=dict)
    context: ExecutionContext
    decision: ClassificationDecision = Field(default_factory=ClassificationDecision)
    timeout_seconds: float | None = Field(None, gt=0)


# ─── Validation ─────────────────────────────────────────────


class FieldError(BaseModel):
    """A single parameter validation error with a dotted path."""
    path: str
    message: str
    expected: str | None = None
    received: str | None = None


# ─── Approval Record ────────────────────────────────────────


class ApprovalRecord(BaseModel):
    """A persisted, state-machined request for human sign-off.

    Records are never deleted. Only the approve/reject/expire transitions
    mutate them, and only out of PENDING.
    """
    id: str = Field(default_factory=lambda: f"apr-{uuid.uuid4().hex[:12]}")
    user_id: str
    tool_name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    category: ToolCategory
    risk_level: RiskLevel
    reasoning: str = ""
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    status: ApprovalStatus = ApprovalStatus.PENDING
    session_id: str | None = None
    conversation_id: str | None = None
    plan_id: str | None = None
    step_index: int | None = None
    requested_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    decided_at: datetime | None = None
    result: Any = None
    error_message: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Derived predicate: a pending record past its deadline is expired."""
        if self.status == ApprovalStatus.EXPIRED:
            return True
        if self.status != ApprovalStatus.PENDING:
            return False
        return (now or utcnow()) >= self.expires_at

    def context(self) -> ExecutionContext:
        """Rebuild the execution context the tool call was requested in."""
        return ExecutionContext(
            user_id=self.user_id,
            session_id=self.session_id,
            conversation_id=self.conversation_id,
            plan_id=self.plan_id,
            step_index=self.step_index,
        )


# ─── Audit Event ────────────────────────────────────────────


class AuditEvent(BaseModel):
    """An immutable audit event, one per orchestrator call or approval decision."""
    id: str = Field(default_factory=lambda: f"aud-{uuid.uuid4().hex[:12]}")
    timestamp: datetime = Field(default_factory=utcnow)
    event_type: str = ""
    tool_name: str = ""
    user_id: str = ""
    outcome: str = ""
    duration_ms: float = 0.0
    session_id: str | None = None
    conversation_id: str | None = None
    approval_id: str | None = None
    risk_level: RiskLevel | None = None
    confidence: float | None = None
    reasoning: str = ""
    error_message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
