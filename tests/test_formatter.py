"""Tests for the Vigil execution result formatter."""

from datetime import datetime, timezone

from vigil.core.models import ErrorCode, RiskLevel, ToolCategory
from vigil.execution import (
    ApprovalSummary,
    ExecutionError,
    ExecutionFailure,
    ExecutionSuccess,
    PendingApproval,
    format_execution_result,
)
from vigil.execution.formatter import format_recipients, format_tool_name, item_type


def success(result):
    return ExecutionSuccess(result=result, audit_log_id="aud-1", duration_ms=12.5)


def failure(code, retryable=False, message="boom"):
    return ExecutionFailure(
        error=ExecutionError(code=code, message=message, retryable=retryable),
        audit_log_id="aud-2",
        duration_ms=3.0,
    )


class TestSuccess:
    def test_empty_list(self):
        formatted = format_execution_result(success([]), "list_tasks", ToolCategory.QUERY)
        assert formatted.success is True
        assert formatted.summary == "No tasks found"
        assert formatted.suggested_follow_ups == []

    def test_list_count_and_follow_ups(self):
        formatted = format_execution_result(success([{}, {}, {}]), "list_tasks", ToolCategory.QUERY)
        assert formatted.summary == "Found 3 tasks"
        assert formatted.suggested_follow_ups == [
            "Would you like to update any of these tasks?",
            "Should I create a new task?",
        ]

    def test_single_item_is_singular(self):
        formatted = format_execution_result(success([{}]), "list_calendar_events", ToolCategory.QUERY)
        assert formatted.summary == "Found 1 event"
        assert len(formatted.suggested_follow_ups) == 2

    def test_created(self):
        formatted = format_execution_result(success({"title": "Buy milk"}), "create_task", "create")
        assert formatted.summary == 'Created task: "Buy milk"'
        assert formatted.details == {"title": "Buy milk"}
        assert formatted.suggested_follow_ups == ["Would you like to set a reminder for this task?"]

    def test_deleted(self):
        formatted = format_execution_result(
            success({"id": "task-1", "title": "Old", "deleted": True}), "delete_task", ToolCategory.DELETE
        )
        assert formatted.summary == 'Deleted task: "Old"'

    def test_updated_without_title(self):
        formatted = format_execution_result(success({"id": "task-1"}), "update_task", ToolCategory.UPDATE)
        assert formatted.summary == "Updated task"

    def test_email_draft(self):
        formatted = format_execution_result(
            success({"to": ["ann@example.com"], "subject": "Lunch"}), "draft_email", ToolCategory.DRAFT
        )
        assert formatted.summary == 'Created email draft to ann@example.com with subject "Lunch"'

    def test_email_sent(self):
        formatted = format_execution_result(
            success({"to": ["a@example.com", "b@example.com", "c@example.com"]}),
            "send_email",
            ToolCategory.EXTERNAL,
        )
        assert formatted.summary == "Sent email to a@example.com and 2 others"

    def test_external_with_title(self):
        formatted = format_execution_result(
            success({"summary": "Standup"}), "create_calendar_event", ToolCategory.EXTERNAL
        )
        assert formatted.summary == 'Create Calendar Event: "Standup"'

    def test_query_object(self):
        formatted = format_execution_result(success({"temp": 21}), "get_weather")
        assert formatted.summary == "Successfully retrieved Get Weather data"
        assert formatted.metadata["tool_category"] == "query"

    def test_no_result(self):
        formatted = format_execution_result(success(None), "create_task", ToolCategory.CREATE)
        assert formatted.summary == "Successfully executed Create Task"

    def test_metadata(self):
        formatted = format_execution_result(success([]), "list_tasks", ToolCategory.QUERY)
        assert formatted.metadata == {
            "tool_name": "list_tasks",
            "tool_category": "query",
            "audit_log_id": "aud-1",
            "duration_ms": 12.5,
            "required_approval": False,
        }


class TestPendingApproval:
    def test_approval_summary(self):
        outcome = PendingApproval(
            approval_id="apr-1",
            expires_at=datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc),
            approval_summary=ApprovalSummary(
                tool_name="delete_task",
                action_description="Permanently delete a task",
                risk_level=RiskLevel.HIGH,
                key_parameters={"task_id": "task-1"},
            ),
            audit_log_id="aud-3",
            duration_ms=1.0,
        )
        formatted = format_execution_result(outcome, "delete_task", ToolCategory.DELETE)
        assert formatted.success is True
        assert formatted.summary == "I need your approval to permanently delete a task. This is a high risk action."
        assert formatted.user_notification == "Action requires your approval. Please review and confirm."
        assert formatted.details["approval_id"] == "apr-1"
        assert formatted.details["expires_at"] == "2026-03-10T18:00:00+00:00"
        assert formatted.details["parameters"] == {"task_id": "task-1"}
        assert formatted.metadata["required_approval"] is True
        assert formatted.metadata["approval_id"] == "apr-1"


class TestFailure:
    def test_validation(self):
        formatted = format_execution_result(failure(ErrorCode.VALIDATION_FAILED, True), "create_task")
        assert formatted.success is False
        assert formatted.summary == "The parameters for Create Task weren't quite right"
        assert formatted.suggested_follow_ups == ["Could you provide more details so I can try again?"]
        assert formatted.details == {"error_code": "validation_failed", "error_message": "boom", "retryable": True}

    def test_integration_missing(self):
        formatted = format_execution_result(failure(ErrorCode.INTEGRATION_MISSING), "send_email")
        assert formatted.summary == "I need additional integrations to be connected to perform this action"
        assert formatted.suggested_follow_ups == [
            "Would you like me to help you connect the required integrations?"
        ]

    def test_unknown_tool(self):
        formatted = format_execution_result(failure(ErrorCode.TOOL_NOT_FOUND), "launch_rocket")
        assert formatted.summary == 'I couldn\'t find the tool "launch_rocket"'

    def test_retryable_execution_failure(self):
        formatted = format_execution_result(failure(ErrorCode.EXECUTION_FAILED, True), "send_email")
        assert formatted.summary == "Something went wrong while executing Send Email"
        assert formatted.suggested_follow_ups == ["I can try again in a moment if you'd like"]

    def test_permanent_execution_failure(self):
        formatted = format_execution_result(failure(ErrorCode.EXECUTION_FAILED, False), "send_email")
        assert formatted.suggested_follow_ups == []

    def test_expired(self):
        formatted = format_execution_result(failure(ErrorCode.APPROVAL_EXPIRED), "send_email")
        assert formatted.suggested_follow_ups == ["Would you like me to request approval again?"]


class TestHelpers:
    def test_format_tool_name(self):
        assert format_tool_name("create_calendar_event") == "Create Calendar Event"

    def test_item_type(self):
        assert item_type("search_emails") == "email"
        assert item_type("list_calendar_events") == "event"
        assert item_type("frobnicate") == "item"

    def test_format_recipients(self):
        assert format_recipients("a@example.com") == "a@example.com"
        assert format_recipients(["a", "b"]) == "a and b"
        assert format_recipients([]) == "recipient"
