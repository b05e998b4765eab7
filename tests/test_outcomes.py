"""Tests for execution outcome types and parameter sanitizing."""

from vigil.execution import ExecutionFailure, ExecutionSuccess, PendingApproval, sanitize_parameters
from vigil.execution.outcomes import MAX_DISPLAY_LENGTH, REDACTED, outcome_adapter


class TestOutcomeAdapter:
    def test_discriminates_on_kind(self):
        success = outcome_adapter.validate_python(
            {"kind": "success", "result": {"id": "task-1"}, "audit_log_id": "aud-1", "duration_ms": 1.0}
        )
        assert isinstance(success, ExecutionSuccess)
        assert success.approval_required is False

        failure = outcome_adapter.validate_python(
            {
                "kind": "failure",
                "error": {"code": "tool_not_found", "message": "nope"},
                "audit_log_id": "aud-2",
                "duration_ms": 0.5,
            }
        )
        assert isinstance(failure, ExecutionFailure)
        assert failure.error.retryable is False

    def test_pending_json_shape(self):
        pending = outcome_adapter.validate_python(
            {
                "kind": "pending_approval",
                "approval_id": "apr-1",
                "expires_at": "2026-03-10T18:00:00Z",
                "approval_summary": {
                    "tool_name": "send_email",
                    "action_description": "Send an email",
                    "risk_level": "high",
                },
                "audit_log_id": "aud-3",
                "duration_ms": 2.0,
            }
        )
        assert isinstance(pending, PendingApproval)
        data = pending.model_dump(mode="json")
        assert data["approval_required"] is True
        assert data["approval_summary"]["risk_level"] == "high"


class TestSanitizeParameters:
    def test_redacts_sensitive_keys(self):
        result = sanitize_parameters({"api_key": "abc", "Password": "x", "auth_header": "y", "title": "ok"})
        assert result == {"api_key": REDACTED, "Password": REDACTED, "auth_header": REDACTED, "title": "ok"}

    def test_truncates_long_strings(self):
        result = sanitize_parameters({"body": "x" * 500})
        assert result["body"] == "x" * MAX_DISPLAY_LENGTH + "..."

    def test_recurses_into_mappings(self):
        result = sanitize_parameters({"headers": {"token": "t", "accept": "json"}, "to": ["a@example.com"]})
        assert result == {"headers": {"token": REDACTED, "accept": "json"}, "to": ["a@example.com"]}

    def test_recurses_into_lists(self):
        result = sanitize_parameters(
            {"attendees": [{"email": "ann@example.com", "token": "t"}, "y" * 300]}
        )
        assert result == {
            "attendees": [{"email": "ann@example.com", "token": REDACTED}, "y" * MAX_DISPLAY_LENGTH + "..."]
        }
