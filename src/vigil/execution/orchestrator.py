"""
Vigil Tool Execution Orchestrator

The single entry point between the agent's classifier and real-world
side effects. Every tool call is:

1. Looked up in the ToolRegistry (unknown tools fail)
2. Validated against the tool's parameter model
3. Checked for required integrations
4. Resolved against the user's autonomy settings (read fresh every call)
5. Either executed under a timeout, or parked as a pending approval
6. Recorded as exactly one event in the audit log

Failures in the taxonomy are returned as ``ExecutionFailure`` values,
never raised. Approval decisions go through ``decide_approval``, which
runs the approved tool body at decision time.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from vigil.approval.workflow import CANCELLED_MESSAGE, ApprovalWorkflow
from vigil.audit.log import AuditSink
from vigil.autonomy.resolver import AutonomyDecision, resolve
from vigil.autonomy.store import AutonomySettingsStore
from vigil.core.models import (
    ApprovalDecision,
    ApprovalRecord,
    AuditEvent,
    DecisionAction,
    ErrorCode,
    ExecutionContext,
    ExecutionRequest,
    utcnow,
)
from vigil.exceptions import (
    ApprovalError,
    IntegrationMissingError,
    ParameterValidationError,
    ToolNotFoundError,
    TransientToolError,
    VigilError,
)
from vigil.execution.outcomes import (
    ApprovalSummary,
    ExecutionError,
    ExecutionFailure,
    ExecutionOutcome,
    ExecutionSuccess,
    PendingApproval,
    sanitize_parameters,
)
from vigil.integrations import IntegrationChecker, connection_instructions
from vigil.logging import get_logger
from vigil.observability import (
    get_tracer,
    record_approval_decision,
    record_tool_call,
    record_tool_call_duration,
)
from vigil.tools.models import Tool
from vigil.tools.registry import ToolRegistry
from vigil.tools.validation import format_errors_for_llm, validate_parameters

logger = get_logger("vigil.execution")

DEFAULT_TIMEOUT_SECONDS = 30.0

_TRANSIENT_MARKERS = ("timeout", "timed out", "rate limit", "temporarily", "retry", "network")


def is_transient_error(exc: BaseException) -> bool:
    """Whether a tool failure is worth retrying as-is."""
    if isinstance(exc, (TransientToolError, TimeoutError, ConnectionError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class ToolExecutionOrchestrator:
    """Routes tool calls through validation, autonomy policy and approval.

    Args:
        registry: The tool catalog.
        integration_checker: Answers whether a user has the tool's integrations.
        settings_store: Per-user autonomy settings, read on every call.
        approval_workflow: Creates and decides approval records.
        audit_sink: Receives exactly one event per call or decision.
        clock: Returns the current aware UTC datetime. Injected for tests.
        default_timeout: Tool body timeout when a request does not set one.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        integration_checker: IntegrationChecker,
        settings_store: AutonomySettingsStore,
        approval_workflow: ApprovalWorkflow,
        audit_sink: AuditSink,
        clock: Callable[[], datetime] = utcnow,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._registry = registry
        self._integrations = integration_checker
        self._settings = settings_store
        self._approvals = approval_workflow
        self._audit = audit_sink
        self._clock = clock
        self._default_timeout = default_timeout

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def approvals(self) -> ApprovalWorkflow:
        return self._approvals

    # ─── Tool calls ─────────────────────────────────────────

    async def execute_tool_call(self, request: ExecutionRequest) -> ExecutionOutcome:
        """Run one tool call through the full pipeline. Never raises for tool failures."""
        start = time.monotonic()
        with get_tracer().start_as_current_span("vigil.execute_tool_call") as span:
            span.set_attribute("vigil.tool_name", request.tool_name)
            span.set_attribute("vigil.user_id", request.context.user_id)
            outcome = await self._execute(request, start)
            span.set_attribute("vigil.outcome", outcome.kind)

        tool = self._registry.get(request.tool_name)
        record_tool_call(
            tool_name=request.tool_name,
            outcome=outcome.kind,
            risk_level=tool.risk_level.value if tool else "unknown",
        )
        record_tool_call_duration(
            tool_name=request.tool_name,
            duration_seconds=time.monotonic() - start,
            outcome=outcome.kind,
        )
        return outcome

    async def _execute(self, request: ExecutionRequest, start: float) -> ExecutionOutcome:
        context = request.context
        logger.debug(
            "Executing tool call",
            extra={"tool_name": request.tool_name, "user_id": context.user_id, "request_id": request.id},
        )

        # 1. Unknown tool
        tool = self._registry.get(request.tool_name)
        if tool is None:
            logger.warning("Tool not found", extra={"tool_name": request.tool_name, "user_id": context.user_id})
            return await self._fail(request, None, ToolNotFoundError(request.tool_name), start)

        # 2. Parameter validation
        validation = validate_parameters(tool, request.parameters)
        if not validation.valid:
            error = ParameterValidationError(tool.name, validation.errors)
            error.details["llm_message"] = format_errors_for_llm(validation.errors, tool.name)
            logger.info(
                "Parameter validation failed",
                extra={"tool_name": tool.name, "user_id": context.user_id},
            )
            return await self._fail(request, tool, error, start)
        params = validation.parsed

        # 3. Integrations
        check = await self._integrations.check(context.user_id, tool.required_integrations)
        if not check.available:
            error = IntegrationMissingError(
                tool.name, check.missing, connection_instructions(check.missing)
            )
            logger.warning(
                "Missing integrations: %s",
                ", ".join(check.missing),
                extra={"tool_name": tool.name, "user_id": context.user_id},
            )
            return await self._fail(request, tool, error, start)

        # 4. Autonomy
        settings = await self._settings.get_settings(context.user_id)
        autonomy = resolve(
            settings,
            tool.name,
            tool.category,
            tool.risk_level,
            request.decision.confidence,
            now=self._clock(),
        )
        logger.debug(
            "Autonomy resolved: %s",
            autonomy.reason,
            extra={
                "tool_name": tool.name,
                "user_id": context.user_id,
                "determined_by": autonomy.determined_by.value,
            },
        )
        if (
            request.decision.action == DecisionAction.REQUEST_APPROVAL
            or autonomy.required
            or tool.requires_approval
        ):
            return await self._request_approval(request, tool, params, autonomy, start)

        # 5. Execute
        return await self._run(request, tool, params, autonomy, start)

    async def _request_approval(
        self,
        request: ExecutionRequest,
        tool: Tool,
        params: Any,
        autonomy: AutonomyDecision,
        start: float,
    ) -> PendingApproval:
        stored_params = params.model_dump(mode="json", exclude_unset=True)
        reasoning = request.decision.reasoning or autonomy.reason
        record = await self._approvals.create(
            request.context,
            tool.name,
            stored_params,
            tool.category,
            tool.risk_level,
            reasoning=reasoning,
            confidence=request.decision.confidence,
        )
        audit_log_id = await self._record(
            request,
            tool,
            "approval_requested",
            "pending_approval",
            start,
            approval_id=record.id,
            details={
                "determined_by": autonomy.determined_by.value,
                "effective_mode": autonomy.effective_mode.value,
                "autonomy_reason": autonomy.reason,
                "caller_requested_approval": request.decision.action == DecisionAction.REQUEST_APPROVAL,
                "tool_requires_approval": tool.requires_approval,
            },
        )
        return PendingApproval(
            approval_id=record.id,
            expires_at=record.expires_at,
            approval_summary=ApprovalSummary(
                tool_name=tool.name,
                action_description=tool.description,
                risk_level=tool.risk_level,
                reasoning=reasoning,
                key_parameters=sanitize_parameters(stored_params),
            ),
            audit_log_id=audit_log_id,
            duration_ms=_elapsed_ms(start),
        )

    async def _run(
        self,
        request: ExecutionRequest,
        tool: Tool,
        params: Any,
        autonomy: AutonomyDecision,
        start: float,
    ) -> ExecutionOutcome:
        timeout = request.timeout_seconds or self._default_timeout
        extra = {"tool_name": tool.name, "user_id": request.context.user_id}
        try:
            result = await self._invoke(tool, params, request.context, timeout)
        except TimeoutError:
            logger.error("Tool timed out after %.1fs", timeout, extra=extra)
            error = ExecutionError(
                code=ErrorCode.EXECUTION_FAILED,
                message=f"Tool '{tool.name}' timed out after {timeout:g}s",
                details={"tool_name": tool.name, "timeout_seconds": timeout},
                retryable=tool.idempotent,
            )
            return await self._fail_with(request, tool, error, start)
        except Exception as exc:
            logger.error("Tool execution failed: %s", exc, extra=extra)
            return await self._fail_with(request, tool, _execution_error(tool, exc), start)

        audit_log_id = await self._record(
            request,
            tool,
            "tool_executed",
            "success",
            start,
            details={
                "determined_by": autonomy.determined_by.value,
                "notify": autonomy.should_notify,
            },
        )
        duration_ms = _elapsed_ms(start)
        logger.info(
            "Tool executed successfully",
            extra={**extra, "audit_log_id": audit_log_id, "duration_ms": round(duration_ms, 2)},
        )
        return ExecutionSuccess(result=result, audit_log_id=audit_log_id, duration_ms=duration_ms)

    @staticmethod
    async def _invoke(tool: Tool, params: Any, context: ExecutionContext, timeout: float) -> Any:
        return await asyncio.wait_for(tool.execute(params, context), timeout=timeout)

    # ─── Approval decisions ─────────────────────────────────

    async def decide_approval(
        self,
        approval_id: str,
        decision: ApprovalDecision | str,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> ApprovalRecord:
        """Approve (and execute) or reject a pending request.

        Raises:
            ApprovalNotFoundError: unknown id, or another user's record.
            ApprovalExpiredError: the request passed its deadline.
            ApprovalAlreadyDecidedError: the request was already decided.
        """
        decision = ApprovalDecision(decision)
        start = time.monotonic()
        with get_tracer().start_as_current_span("vigil.decide_approval") as span:
            span.set_attribute("vigil.approval_id", approval_id)
            span.set_attribute("vigil.decision", decision.value)
            try:
                if decision == ApprovalDecision.APPROVE:
                    record = await self._approvals.approve(approval_id, self._execute_approved, user_id)
                else:
                    record = await self._approvals.reject(approval_id, notes, user_id)
            except ApprovalError as exc:
                span.set_attribute("vigil.outcome", exc.code.value)
                await self._record_decision_failure(
                    approval_id,
                    user_id,
                    "approval_decision_failed",
                    exc.message,
                    start,
                    {"decision": decision.value, "code": exc.code.value},
                )
                raise
            except asyncio.CancelledError:
                span.set_attribute("vigil.outcome", "cancelled")
                await self._record_decision_failure(
                    approval_id,
                    user_id,
                    "approval_execution_cancelled",
                    CANCELLED_MESSAGE,
                    start,
                    {"decision": decision.value},
                )
                raise
            span.set_attribute("vigil.outcome", record.status.value)

        await self._audit.record(
            AuditEvent(
                timestamp=self._clock(),
                event_type=f"approval_{record.status.value}",
                tool_name=record.tool_name,
                user_id=record.user_id,
                outcome="failure" if record.error_message and decision == ApprovalDecision.APPROVE else "success",
                duration_ms=_elapsed_ms(start),
                session_id=record.session_id,
                conversation_id=record.conversation_id,
                approval_id=record.id,
                risk_level=record.risk_level,
                confidence=record.confidence,
                reasoning=record.reasoning,
                error_message=record.error_message,
                details={"decision": decision.value, "notes": notes},
            )
        )
        record_approval_decision(
            tool_name=record.tool_name, decision=decision.value, status=record.status.value
        )
        return record

    async def _record_decision_failure(
        self,
        approval_id: str,
        user_id: str | None,
        event_type: str,
        error_message: str,
        start: float,
        details: dict[str, Any],
    ) -> None:
        # Unscoped lookup: the event names the record's owner even when the caller gave no user
        known = await self._approvals.store.get(approval_id)
        await self._audit.record(
            AuditEvent(
                timestamp=self._clock(),
                event_type=event_type,
                tool_name=known.tool_name if known else "",
                user_id=user_id or (known.user_id if known else ""),
                outcome="failure",
                approval_id=approval_id,
                duration_ms=_elapsed_ms(start),
                session_id=known.session_id if known else None,
                conversation_id=known.conversation_id if known else None,
                risk_level=known.risk_level if known else None,
                error_message=error_message,
                details=details,
            )
        )

    async def _execute_approved(self, record: ApprovalRecord) -> Any:
        """Run the tool body for a just-approved record. Failures propagate to the workflow."""
        tool = self._registry.get(record.tool_name)
        if tool is None:
            raise ToolNotFoundError(record.tool_name)
        validation = validate_parameters(tool, record.parameters)
        if not validation.valid:
            raise ParameterValidationError(tool.name, validation.errors)
        context = record.context()
        check = await self._integrations.check(context.user_id, tool.required_integrations)
        if not check.available:
            raise IntegrationMissingError(
                tool.name, check.missing, connection_instructions(check.missing)
            )
        return await self._invoke(tool, validation.parsed, context, self._default_timeout)

    # ─── Helpers ────────────────────────────────────────────

    async def _fail(
        self,
        request: ExecutionRequest,
        tool: Tool | None,
        exc: VigilError,
        start: float,
    ) -> ExecutionFailure:
        return await self._fail_with(request, tool, exc.to_failure(), start)

    async def _fail_with(
        self,
        request: ExecutionRequest,
        tool: Tool | None,
        error: ExecutionError,
        start: float,
    ) -> ExecutionFailure:
        audit_log_id = await self._record(
            request,
            tool,
            f"tool_{error.code.value}",
            "failure",
            start,
            error_message=error.message,
            details={"code": error.code.value, "retryable": error.retryable},
        )
        return ExecutionFailure(error=error, audit_log_id=audit_log_id, duration_ms=_elapsed_ms(start))

    async def _record(
        self,
        request: ExecutionRequest,
        tool: Tool | None,
        event_type: str,
        outcome: str,
        start: float,
        approval_id: str | None = None,
        error_message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> str:
        context = request.context
        event = AuditEvent(
            timestamp=self._clock(),
            event_type=event_type,
            tool_name=request.tool_name,
            user_id=context.user_id,
            outcome=outcome,
            duration_ms=_elapsed_ms(start),
            session_id=context.session_id,
            conversation_id=context.conversation_id,
            approval_id=approval_id,
            risk_level=tool.risk_level if tool else None,
            confidence=request.decision.confidence,
            reasoning=request.decision.reasoning,
            error_message=error_message,
            details={"request_id": request.id, **(details or {})},
        )
        return await self._audit.record(event)


def _execution_error(tool: Tool, exc: Exception) -> ExecutionError:
    # A body failure is always execution_failed, whatever error type the tool raised
    if isinstance(exc, VigilError):
        return ExecutionError(
            code=ErrorCode.EXECUTION_FAILED,
            message=exc.message,
            details={"tool_name": tool.name, **exc.details, "cause_code": exc.code.value},
            retryable=is_transient_error(exc),
        )
    message = str(exc) or type(exc).__name__
    return ExecutionError(
        code=ErrorCode.EXECUTION_FAILED,
        message=message,
        details={"tool_name": tool.name, "type": type(exc).__name__},
        retryable=is_transient_error(exc),
    )


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000
