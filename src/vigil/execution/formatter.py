"""
Vigil Execution Result Formatter

Turns an ``ExecutionOutcome`` into a short, user-facing summary plus
structured details the agent's response generator can work from.
Stateless; the tool category is passed in rather than looked up.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from vigil.core.models import ErrorCode, ToolCategory
from vigil.execution.outcomes import (
    ExecutionFailure,
    ExecutionOutcome,
    ExecutionSuccess,
    PendingApproval,
)

MAX_FOLLOW_UPS = 2


class FormattedExecutionResult(BaseModel):
    """Presentation-ready view of one tool call outcome."""
    success: bool
    summary: str
    details: Any = None
    user_notification: str | None = None
    suggested_follow_ups: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


def format_execution_result(
    outcome: ExecutionOutcome,
    tool_name: str,
    category: ToolCategory | str | None = None,
) -> FormattedExecutionResult:
    """Format an outcome for response generation."""
    category = ToolCategory(category) if category else ToolCategory.QUERY
    metadata = {
        "tool_name": tool_name,
        "tool_category": category.value,
        "audit_log_id": outcome.audit_log_id,
        "duration_ms": outcome.duration_ms,
        "required_approval": isinstance(outcome, PendingApproval),
    }

    if isinstance(outcome, ExecutionFailure):
        return _format_failure(outcome, tool_name, metadata)
    if isinstance(outcome, PendingApproval):
        return _format_approval(outcome, metadata)
    return _format_success(outcome, tool_name, category, metadata)


# ─── Variants ───────────────────────────────────────────────


def _format_success(
    outcome: ExecutionSuccess,
    tool_name: str,
    category: ToolCategory,
    metadata: dict[str, Any],
) -> FormattedExecutionResult:
    return FormattedExecutionResult(
        success=True,
        summary=_success_summary(tool_name, category, outcome.result),
        details=outcome.result,
        suggested_follow_ups=_follow_ups(tool_name, category, outcome.result),
        metadata=metadata,
    )


def _format_approval(outcome: PendingApproval, metadata: dict[str, Any]) -> FormattedExecutionResult:
    summary = outcome.approval_summary
    action = summary.action_description or format_tool_name(summary.tool_name)
    return FormattedExecutionResult(
        success=True,
        summary=(
            f"I need your approval to {action[:1].lower()}{action[1:]}. "
            f"This is a {summary.risk_level.value} risk action."
        ),
        details={
            "approval_id": outcome.approval_id,
            "expires_at": outcome.expires_at.isoformat(),
            "action": summary.action_description,
            "risk_level": summary.risk_level.value,
            "parameters": summary.key_parameters,
        },
        user_notification="Action requires your approval. Please review and confirm.",
        metadata={**metadata, "approval_id": outcome.approval_id},
    )


def _format_failure(
    outcome: ExecutionFailure,
    tool_name: str,
    metadata: dict[str, Any],
) -> FormattedExecutionResult:
    error = outcome.error
    return FormattedExecutionResult(
        success=False,
        summary=_error_summary(tool_name, error.code),
        details={
            "error_code": error.code.value,
            "error_message": error.message,
            "retryable": error.retryable,
        },
        suggested_follow_ups=_error_follow_ups(error.code, error.retryable),
        metadata=metadata,
    )


# ─── Summaries ──────────────────────────────────────────────


def _success_summary(tool_name: str, category: ToolCategory, result: Any) -> str:
    if result is None:
        return f"Successfully executed {format_tool_name(tool_name)}"

    if isinstance(result, list):
        item = item_type(tool_name)
        if not result:
            return f"No {item}s found"
        return f"Found {len(result)} {item}{'' if len(result) == 1 else 's'}"

    if isinstance(result, Mapping):
        return _object_summary(tool_name, category, result)

    return f"Successfully executed {format_tool_name(tool_name)}"


def _title(result: Mapping[str, Any]) -> Any:
    return result.get("title") or result.get("name") or result.get("summary") or result.get("subject")


def _object_summary(tool_name: str, category: ToolCategory, result: Mapping[str, Any]) -> str:
    entity = item_type(tool_name)
    title = _title(result)

    if category == ToolCategory.CREATE:
        return f'Created {entity}: "{title}"' if title else f"Created new {entity}"
    if category == ToolCategory.UPDATE:
        return f'Updated {entity}: "{title}"' if title else f"Updated {entity}"
    if category == ToolCategory.DELETE:
        return f'Deleted {entity}: "{title}"' if title else f"Deleted {entity}"
    if category == ToolCategory.DRAFT:
        if "email" in tool_name:
            to = result.get("to")
            subject = result.get("subject")
            if subject and to:
                return f'Created email draft to {format_recipients(to)} with subject "{subject}"'
            if subject:
                return f'Created email draft: "{subject}"'
            return "Created email draft"
        return f"Created draft for {format_tool_name(tool_name)}"
    if category == ToolCategory.EXTERNAL:
        if "email" in tool_name:
            to = result.get("to")
            return f"Sent email to {format_recipients(to)}" if to else "Email sent successfully"
        if title:
            return f'{format_tool_name(tool_name)}: "{title}"'
        return f"Successfully executed {format_tool_name(tool_name)}"
    return f"Successfully retrieved {format_tool_name(tool_name)} data"


_ERROR_SUMMARIES = {
    ErrorCode.TOOL_NOT_FOUND: 'I couldn\'t find the tool "{tool}"',
    ErrorCode.VALIDATION_FAILED: "The parameters for {name} weren't quite right",
    ErrorCode.INTEGRATION_MISSING: "I need additional integrations to be connected to perform this action",
    ErrorCode.APPROVAL_EXPIRED: "The approval request for {name} expired before it was decided",
    ErrorCode.APPROVAL_ALREADY_DECIDED: "That request for {name} has already been decided",
    ErrorCode.APPROVAL_NOT_FOUND: "I couldn't find that approval request",
}


def _error_summary(tool_name: str, code: ErrorCode) -> str:
    template = _ERROR_SUMMARIES.get(code, "Something went wrong while executing {name}")
    return template.format(tool=tool_name, name=format_tool_name(tool_name))


# ─── Follow-ups ─────────────────────────────────────────────


def _follow_ups(tool_name: str, category: ToolCategory, result: Any) -> list[str]:
    suggestions: list[str] = []

    if category == ToolCategory.QUERY and isinstance(result, list) and result:
        if "event" in tool_name or "calendar" in tool_name:
            suggestions.append("Would you like me to create a new event?")
            suggestions.append("Should I reschedule any of these events?")
        if "task" in tool_name:
            suggestions.append("Would you like to update any of these tasks?")
            suggestions.append("Should I create a new task?")
        if "email" in tool_name:
            suggestions.append("Would you like me to draft a reply?")

    if category == ToolCategory.CREATE:
        if "event" in tool_name or "calendar" in tool_name:
            suggestions.append("Would you like to invite anyone to this event?")
        if "task" in tool_name:
            suggestions.append("Would you like to set a reminder for this task?")

    return suggestions[:MAX_FOLLOW_UPS]


def _error_follow_ups(code: ErrorCode, retryable: bool) -> list[str]:
    if code == ErrorCode.INTEGRATION_MISSING:
        return ["Would you like me to help you connect the required integrations?"]
    if code == ErrorCode.VALIDATION_FAILED:
        return ["Could you provide more details so I can try again?"]
    if code == ErrorCode.EXECUTION_FAILED and retryable:
        return ["I can try again in a moment if you'd like"]
    if code == ErrorCode.APPROVAL_EXPIRED:
        return ["Would you like me to request approval again?"]
    return []


# ─── Text helpers ───────────────────────────────────────────


def format_tool_name(tool_name: str) -> str:
    """``create_calendar_event`` -> ``Create Calendar Event``."""
    return " ".join(word.capitalize() for word in tool_name.split("_") if word)


def item_type(tool_name: str) -> str:
    """Singular noun for what a tool returns, guessed from its name."""
    if "event" in tool_name or "calendar" in tool_name:
        return "event"
    if "task" in tool_name:
        return "task"
    if "email" in tool_name:
        return "email"
    if "contact" in tool_name or "person" in tool_name:
        return "contact"
    if "deadline" in tool_name:
        return "deadline"
    return "item"


def format_recipients(recipients: Any) -> str:
    if isinstance(recipients, str):
        return recipients
    if isinstance(recipients, (list, tuple)):
        if len(recipients) == 1:
            return str(recipients[0])
        if len(recipients) == 2:
            return f"{recipients[0]} and {recipients[1]}"
        if recipients:
            return f"{recipients[0]} and {len(recipients) - 1} others"
    return "recipient"
