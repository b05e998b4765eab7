"""
Vigil Tool System Models

The tool abstraction the orchestrator executes. Every tool declares its
static safety metadata (category, risk level, required integrations)
alongside a pydantic parameter model, so validation, autonomy resolution
and audit logging all read from the same immutable definition.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from vigil.core.models import ExecutionContext, RiskLevel, ToolCategory


class ToolParameters(BaseModel):
    """Base class for tool parameter schemas. Unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")


class ToolDefinition(BaseModel):
    """Serializable description of a registered tool (for catalogs and LLM schemas)."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    category: ToolCategory
    risk_level: RiskLevel
    required_integrations: list[str] = Field(default_factory=list)
    requires_approval: bool = False
    idempotent: bool = False
    input_schema: dict[str, Any] = Field(default_factory=dict)


class Tool(ABC):
    """A capability the agent can invoke.

    Subclasses set the class attributes below and implement ``execute``.
    Definitions are immutable once registered; the same instance is shared
    by every concurrent call, so ``execute`` must not keep per-call state
    on ``self``.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    category: ClassVar[ToolCategory]
    risk_level: ClassVar[RiskLevel] = RiskLevel.LOW
    parameters: ClassVar[type[ToolParameters]] = ToolParameters
    # Ordered: missing integrations are reported in declaration order
    required_integrations: ClassVar[tuple[str, ...]] = ()
    requires_approval: ClassVar[bool] = False
    idempotent: ClassVar[bool] = False

    @abstractmethod
    async def execute(self, params: Any, context: ExecutionContext) -> Any:
        """Run the tool with validated parameters on behalf of ``context.user_id``."""

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            category=self.category,
            risk_level=self.risk_level,
            required_integrations=list(self.required_integrations),
            requires_approval=self.requires_approval,
            idempotent=self.idempotent,
            input_schema=self.parameters.model_json_schema(),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self.category.value}/{self.risk_level.value}>"
