"""Tests for Vigil custom exceptions.

Covers the exception hierarchy, error codes and conversion to
ExecutionFailure payloads.
"""

from vigil.core.models import ApprovalStatus, ErrorCode, FieldError
from vigil.exceptions import (
    ApprovalAlreadyDecidedError,
    ApprovalError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
    IntegrationMissingError,
    InvalidSettingsError,
    ParameterValidationError,
    ToolExecutionError,
    ToolNotFoundError,
    TransientToolError,
    VigilError,
)


class TestVigilError:
    def test_base_error(self):
        err = VigilError("something went wrong")
        assert str(err) == "something went wrong"
        assert err.details == {}
        assert err.code == ErrorCode.EXECUTION_FAILED
        assert err.retryable is False

    def test_user_message_default_and_override(self):
        assert VigilError("x").user_message == VigilError.default_user_message
        assert VigilError("x", user_message="Try later").user_message == "Try later"

    def test_to_dict(self):
        err = ToolNotFoundError("launch_rocket")
        assert err.to_dict() == {
            "code": "tool_not_found",
            "message": "Tool 'launch_rocket' is not registered",
            "retryable": False,
            "details": {"tool_name": "launch_rocket"},
        }

    def test_to_failure(self):
        failure = TransientToolError("search_emails", "rate limited").to_failure()
        assert failure.code == ErrorCode.EXECUTION_FAILED
        assert failure.retryable is True
        assert failure.details == {"tool_name": "search_emails"}


class TestToolErrors:
    def test_validation_error_is_retryable(self):
        errors = [FieldError(path="title", message="Required", received="missing")]
        err = ParameterValidationError("create_task", errors)
        assert err.retryable is True
        assert err.code == ErrorCode.VALIDATION_FAILED
        assert "title: Required" in err.message
        assert err.details["field_errors"][0]["path"] == "title"

    def test_integration_missing(self):
        err = IntegrationMissingError("send_email", ["gmail", "contacts"], "Connect Gmail")
        assert err.code == ErrorCode.INTEGRATION_MISSING
        assert err.missing == ["gmail", "contacts"]
        assert err.details["connection_instructions"] == "Connect Gmail"
        assert "gmail, contacts" in err.user_message

    def test_execution_error_hierarchy(self):
        assert issubclass(TransientToolError, ToolExecutionError)
        assert ToolExecutionError("t", "bad").retryable is False
        assert TransientToolError("t", "busy").retryable is True


class TestApprovalErrors:
    def test_hierarchy(self):
        for cls in (ApprovalNotFoundError, ApprovalExpiredError, ApprovalAlreadyDecidedError):
            assert issubclass(cls, ApprovalError)
            assert issubclass(cls, VigilError)

    def test_codes(self):
        assert ApprovalNotFoundError("apr-1").code == ErrorCode.APPROVAL_NOT_FOUND
        assert ApprovalExpiredError("apr-1").code == ErrorCode.APPROVAL_EXPIRED
        assert ApprovalAlreadyDecidedError("apr-1", ApprovalStatus.REJECTED).code == ErrorCode.APPROVAL_ALREADY_DECIDED

    def test_already_decided_carries_status(self):
        err = ApprovalAlreadyDecidedError("apr-1", ApprovalStatus.APPROVED)
        assert err.status == ApprovalStatus.APPROVED
        assert err.details == {"approval_id": "apr-1", "status": "approved"}


class TestInvalidSettingsError:
    def test_collects_errors(self):
        err = InvalidSettingsError(["a: bad", "b: worse"])
        assert err.errors == ["a: bad", "b: worse"]
        assert "a: bad; b: worse" in str(err)
