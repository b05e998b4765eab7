"""
Vigil Tool Registry

Central registry for all tools the agent can call. Each tool carries the
safety metadata (category, risk level, required integrations) that the
orchestrator and autonomy resolver read on every call.

The registry is an explicit value handed to the orchestrator rather than
a process-wide singleton, so tests and tenants can hold separate catalogs.
"""

from __future__ import annotations

from collections.abc import Iterable

from vigil.core.models import RiskLevel, ToolCategory
from vigil.tools.models import Tool, ToolParameters

_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class ToolRegistry:
    """Name-keyed catalog of registered tools.

    Tools are registered once at startup and looked up per call.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Register a tool.

        Raises:
            ValueError: a tool with the same name already exists, or the
                tool is missing its name, category or parameter schema.
        """
        name = getattr(tool, "name", "")
        if not name:
            raise ValueError(f"{type(tool).__name__} has no name")
        if not isinstance(getattr(tool, "category", None), ToolCategory):
            raise ValueError(f"Tool '{name}' has no valid category")
        if not (isinstance(tool.parameters, type) and issubclass(tool.parameters, ToolParameters)):
            raise ValueError(f"Tool '{name}' parameters must subclass ToolParameters")
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        self._tools[name] = tool

    def get(self, name: str) -> Tool | None:
        """Look up a registered tool by name."""
        return self._tools.get(name)

    def get_all(self) -> list[Tool]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def get_by_category(self, category: ToolCategory) -> list[Tool]:
        return [t for t in self._tools.values() if t.category == category]

    def get_by_integration(self, integration: str) -> list[Tool]:
        return [t for t in self._tools.values() if integration in t.required_integrations]

    def get_up_to_risk(self, max_risk: RiskLevel) -> list[Tool]:
        """Tools whose risk level does not exceed ``max_risk``."""
        max_idx = _RISK_ORDER.index(max_risk)
        return [t for t in self._tools.values() if _RISK_ORDER.index(t.risk_level) <= max_idx]

    def get_available(self, connected: Iterable[str]) -> list[Tool]:
        """Tools whose required integrations are all in ``connected``."""
        connected = set(connected)
        return [
            t for t in self._tools.values()
            if all(i in connected for i in t.required_integrations)
        ]

    def get_schemas(self, tools: list[Tool] | None = None) -> list[dict]:
        """LLM tool schemas (name, description, input_schema) for a set of tools.

        If tools is None, returns schemas for all registered tools.
        """
        source = tools if tools is not None else list(self._tools.values())
        return [
            {
                "name": t.name,
                "description": t.description,
                "input_schema": t.parameters.model_json_schema(),
            }
            for t in source
        ]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self):
        return iter(self._tools.values())
