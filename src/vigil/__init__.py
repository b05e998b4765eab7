"""
Vigil: Autonomy Policy and Tool Execution Core for Personal AI Agents

Usage:
    from vigil import Vigil, ExecutionRequest, ExecutionContext, ClassificationDecision

    vigil = Vigil()
    outcome = await vigil.execute_tool_call(
        ExecutionRequest(
            tool_name="create_task",
            parameters={"title": "Buy milk"},
            context=ExecutionContext(user_id="u-1"),
            decision=ClassificationDecision(confidence=0.92, reasoning="User asked to add a task"),
        )
    )

    # Persistent stores, logging and tracing from VIGIL_* environment variables:
    vigil = Vigil.from_config()
"""

__version__ = "0.1.0"

from collections.abc import Callable  # noqa: E402
from datetime import datetime  # noqa: E402

from vigil.approval import (  # noqa: E402
    ApprovalStore,
    ApprovalWorkflow,
    InMemoryApprovalStore,
    SqlApprovalStore,
)
from vigil.audit import AuditSink, ImmutableAuditLog  # noqa: E402
from vigil.autonomy import (  # noqa: E402
    AutonomyDecision,
    AutonomySettings,
    AutonomySettingsStore,
    InMemoryAutonomySettingsStore,
    SqlAutonomySettingsStore,
    resolve,
)
from vigil.config import VigilConfig  # noqa: E402
from vigil.core.models import (  # noqa: E402
    ApprovalDecision,
    ApprovalRecord,
    ClassificationDecision,
    DecisionAction,
    ExecutionContext,
    ExecutionRequest,
    RiskLevel,
    ToolCategory,
    utcnow,
)
from vigil.execution import (  # noqa: E402
    ExecutionOutcome,
    FormattedExecutionResult,
    ToolExecutionOrchestrator,
    format_execution_result,
)
from vigil.integrations import AccountStore, InMemoryAccountStore, IntegrationChecker  # noqa: E402
from vigil.logging import configure_logging, get_logger  # noqa: E402
from vigil.observability import init_tracing  # noqa: E402
from vigil.storage.db import connect  # noqa: E402
from vigil.tools import Tool, ToolRegistry  # noqa: E402
from vigil.tools.builtin import build_default_registry  # noqa: E402

logger = get_logger("vigil")

__all__ = [
    # Main API
    "Vigil",
    "__version__",
    # Requests and outcomes
    "ApprovalDecision",
    "ApprovalRecord",
    "ClassificationDecision",
    "DecisionAction",
    "ExecutionContext",
    "ExecutionOutcome",
    "ExecutionRequest",
    "FormattedExecutionResult",
    "RiskLevel",
    "ToolCategory",
    # Components
    "ApprovalWorkflow",
    "AutonomyDecision",
    "AutonomySettings",
    "ImmutableAuditLog",
    "IntegrationChecker",
    "Tool",
    "ToolExecutionOrchestrator",
    "ToolRegistry",
    "VigilConfig",
    "format_execution_result",
    "resolve",
]


class Vigil:
    """Wires the decision and execution core together.

    Every collaborator can be supplied; anything omitted gets an in-memory
    default, so ``Vigil()`` is a complete, self-contained instance.
    """

    def __init__(
        self,
        registry: ToolRegistry | None = None,
        accounts: AccountStore | None = None,
        settings_store: AutonomySettingsStore | None = None,
        approval_store: ApprovalStore | None = None,
        audit_sink: AuditSink | None = None,
        approval_ttl_seconds: float | None = None,
        execution_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.registry = registry if registry is not None else build_default_registry()
        self.accounts = accounts or InMemoryAccountStore()
        self.settings = settings_store or InMemoryAutonomySettingsStore()
        self.approval_store = approval_store or InMemoryApprovalStore()
        self.audit = audit_sink or ImmutableAuditLog()
        self.approvals = ApprovalWorkflow(self.approval_store, approval_ttl_seconds, clock)
        self.orchestrator = ToolExecutionOrchestrator(
            registry=self.registry,
            integration_checker=IntegrationChecker(self.accounts),
            settings_store=self.settings,
            approval_workflow=self.approvals,
            audit_sink=self.audit,
            clock=clock,
            default_timeout=execution_timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: VigilConfig | None = None, **overrides) -> "Vigil":
        """Build an instance backed by the configured database.

        Also applies the configured logging and, when an OTLP endpoint is
        set, installs the tracing exporter.
        """
        config = config or VigilConfig.from_env()
        configure_logging(level=config.log_level, json_output=config.log_json)
        if config.otlp_endpoint:
            init_tracing(endpoint=config.otlp_endpoint)

        conn = connect(config.database_url)
        overrides.setdefault("settings_store", SqlAutonomySettingsStore(conn=conn))
        overrides.setdefault("approval_store", SqlApprovalStore(conn=conn))
        overrides.setdefault("approval_ttl_seconds", config.approval_ttl_seconds)
        overrides.setdefault("execution_timeout_seconds", config.execution_timeout_seconds)
        logger.info("Vigil configured with database %s", config.database_url)
        return cls(**overrides)

    def close(self) -> None:
        """Close any persistent stores."""
        for store in (self.settings, self.approval_store):
            close = getattr(store, "close", None)
            if close is not None:
                close()

    async def execute_tool_call(self, request: ExecutionRequest) -> ExecutionOutcome:
        """See ``ToolExecutionOrchestrator.execute_tool_call``."""
        return await self.orchestrator.execute_tool_call(request)

    async def decide_approval(
        self,
        approval_id: str,
        decision: ApprovalDecision | str,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> ApprovalRecord:
        """See ``ToolExecutionOrchestrator.decide_approval``."""
        return await self.orchestrator.decide_approval(approval_id, decision, notes, user_id)

    def format_execution_result(
        self, outcome: ExecutionOutcome, tool_name: str
    ) -> FormattedExecutionResult:
        """Format an outcome, taking the tool's category from the registry."""
        tool = self.registry.get(tool_name)
        return format_execution_result(outcome, tool_name, tool.category if tool else None)
