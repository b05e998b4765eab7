"""
Vigil Custom Exceptions

Structured exception hierarchy for the Vigil decision and execution core.
All Vigil-specific exceptions inherit from VigilError and carry a stable
error code, a retryable flag, structured details, and a non-technical
message safe to show to the end user.

Exception hierarchy:
    VigilError
    +-- ToolNotFoundError             (tool not registered)
    +-- ParameterValidationError      (arguments do not match the schema, retryable)
    +-- IntegrationMissingError       (required account not connected)
    +-- ToolExecutionError            (tool body raised)
    |   +-- TransientToolError        (rate limit or network, retryable)
    +-- ApprovalError
    |   +-- ApprovalNotFoundError
    |   +-- ApprovalExpiredError
    |   +-- ApprovalAlreadyDecidedError
    +-- InvalidSettingsError          (rejected at the settings-update boundary)
"""

from __future__ import annotations

from typing import Any

from vigil.core.models import ApprovalStatus, ErrorCode, FieldError


class VigilError(Exception):
    """Base exception for all Vigil errors."""

    code: ErrorCode = ErrorCode.EXECUTION_FAILED
    retryable: bool = False
    default_user_message = "Something went wrong while handling that request."

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self.default_user_message

    def to_dict(self) -> dict[str, Any]:
        """Safe representation for logs and transport layers."""
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def to_failure(self):
        """Convert to an ExecutionError payload for an ExecutionFailure outcome."""
        from vigil.execution.outcomes import ExecutionError

        return ExecutionError(
            code=self.code,
            message=self.message,
            details=self.details or None,
            retryable=self.retryable,
        )


class ToolNotFoundError(VigilError):
    """Raised when a tool name is not in the registry."""

    code = ErrorCode.TOOL_NOT_FOUND
    default_user_message = "I don't know how to do that yet."

    def __init__(self, tool_name: str):
        super().__init__(
            f"Tool '{tool_name}' is not registered",
            details={"tool_name": tool_name},
        )
        self.tool_name = tool_name


class ParameterValidationError(VigilError):
    """Raised when raw arguments fail a tool's parameter schema.

    Retryable: the caller may re-prompt with corrected arguments.
    """

    code = ErrorCode.VALIDATION_FAILED
    retryable = True
    default_user_message = "Some of the details for that action weren't quite right."

    def __init__(self, tool_name: str, errors: list[FieldError]):
        super().__init__(
            f"Parameter validation failed for '{tool_name}': "
            + "; ".join(f"{e.path}: {e.message}" for e in errors),
            details={"tool_name": tool_name, "field_errors": [e.model_dump() for e in errors]},
        )
        self.tool_name = tool_name
        self.errors = errors


class IntegrationMissingError(VigilError):
    """Raised when a tool needs integrations the user has not connected."""

    code = ErrorCode.INTEGRATION_MISSING

    def __init__(self, tool_name: str, missing: list[str], instructions: str = ""):
        super().__init__(
            f"Required integrations not connected: {', '.join(missing)}",
            details={
                "tool_name": tool_name,
                "missing_integrations": list(missing),
                "connection_instructions": instructions,
            },
            user_message=f"This needs your {', '.join(missing)} account connected first.",
        )
        self.tool_name = tool_name
        self.missing = list(missing)


class ToolExecutionError(VigilError):
    """Raised when a tool body fails.

    Tools raise this (or a subclass) to report an expected failure with a
    clean message; any other exception is wrapped by the orchestrator.
    """

    code = ErrorCode.EXECUTION_FAILED

    def __init__(self, tool_name: str, message: str, details: dict | None = None):
        super().__init__(
            f"Tool '{tool_name}' execution failed: {message}",
            details={"tool_name": tool_name, **(details or {})},
        )
        self.tool_name = tool_name


class TransientToolError(ToolExecutionError):
    """A tool failure the caller may retry (rate limit, network, timeout)."""

    retryable = True
    default_user_message = "That service is busy right now. I can try again in a moment."


class ApprovalError(VigilError):
    """Base class for approval workflow errors."""

    def __init__(self, approval_id: str, message: str, details: dict | None = None):
        super().__init__(message, details={"approval_id": approval_id, **(details or {})})
        self.approval_id = approval_id


class ApprovalNotFoundError(ApprovalError):
    code = ErrorCode.APPROVAL_NOT_FOUND
    default_user_message = "I couldn't find that approval request."

    def __init__(self, approval_id: str):
        super().__init__(approval_id, f"Approval '{approval_id}' not found")


class ApprovalExpiredError(ApprovalError):
    code = ErrorCode.APPROVAL_EXPIRED
    default_user_message = "That approval request has expired."

    def __init__(self, approval_id: str, expires_at: object = None):
        super().__init__(
            approval_id,
            f"Approval '{approval_id}' expired",
            details={"expires_at": str(expires_at) if expires_at else None},
        )


class ApprovalAlreadyDecidedError(ApprovalError):
    """Raised on a second decision for the same approval record."""

    code = ErrorCode.APPROVAL_ALREADY_DECIDED
    default_user_message = "That request has already been decided."

    def __init__(self, approval_id: str, status: ApprovalStatus):
        super().__init__(
            approval_id,
            f"Approval '{approval_id}' was already decided ({status.value})",
            details={"status": status.value},
        )
        self.status = status


class InvalidSettingsError(VigilError):
    """Raised when an autonomy settings update would produce invalid settings.

    Carries every problem found, not just the first.
    """

    code = ErrorCode.VALIDATION_FAILED
    default_user_message = "Those autonomy settings aren't valid."

    def __init__(self, errors: list[str]):
        super().__init__(
            f"Invalid autonomy settings: {'; '.join(errors)}",
            details={"errors": list(errors)},
        )
        self.errors = list(errors)
