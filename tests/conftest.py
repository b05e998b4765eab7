"""Shared test fixtures for the Vigil test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from vigil.approval import ApprovalWorkflow, InMemoryApprovalStore
from vigil.audit import ImmutableAuditLog
from vigil.autonomy import InMemoryAutonomySettingsStore
from vigil.core.models import (
    ClassificationDecision,
    DecisionAction,
    ExecutionContext,
    ExecutionRequest,
)
from vigil.execution import ToolExecutionOrchestrator
from vigil.integrations import InMemoryAccountStore, IntegrationChecker
from vigil.tools.builtin import InMemoryPersonalDataBackend, build_default_registry

USER = "user-1"


class FakeClock:
    """Settable clock for expiry and quiet-hours tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_request(
    tool_name: str,
    parameters=None,
    user_id: str = USER,
    confidence: float = 0.95,
    action: DecisionAction = DecisionAction.EXECUTE,
    **kwargs,
) -> ExecutionRequest:
    return ExecutionRequest(
        tool_name=tool_name,
        parameters={} if parameters is None else parameters,
        context=ExecutionContext(
            user_id=user_id,
            session_id="sess-1",
            conversation_id="conv-1",
        ),
        decision=ClassificationDecision(
            action=action,
            confidence=confidence,
            reasoning="User asked for it",
        ),
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return InMemoryPersonalDataBackend()


@pytest.fixture
def registry(backend):
    return build_default_registry(backend)


@pytest.fixture
def accounts():
    return InMemoryAccountStore({USER: ["gmail", "calendar"]})


@pytest.fixture
def settings_store():
    return InMemoryAutonomySettingsStore()


@pytest.fixture
def approval_store():
    return InMemoryApprovalStore()


@pytest.fixture
def workflow(approval_store, clock):
    return ApprovalWorkflow(approval_store, clock=clock)


@pytest.fixture
def audit_log():
    return ImmutableAuditLog()


@pytest.fixture
def orchestrator(registry, accounts, settings_store, workflow, audit_log, clock):
    return ToolExecutionOrchestrator(
        registry=registry,
        integration_checker=IntegrationChecker(accounts),
        settings_store=settings_store,
        approval_workflow=workflow,
        audit_sink=audit_log,
        clock=clock,
    )
