"""
Vigil Built-in Tools

The personal-agent tool catalog: tasks, calendar and email, all backed
by a ``PersonalDataBackend``.
"""

from vigil.tools.builtin.backend import InMemoryPersonalDataBackend, PersonalDataBackend
from vigil.tools.builtin.calendar import CreateCalendarEventTool, ListCalendarEventsTool
from vigil.tools.builtin.email import DraftEmailTool, SearchEmailsTool, SendEmailTool
from vigil.tools.builtin.tasks import CreateTaskTool, DeleteTaskTool, ListTasksTool, UpdateTaskTool
from vigil.tools.registry import ToolRegistry

ALL_BUILTIN_TOOLS = [
    ListTasksTool,
    CreateTaskTool,
    UpdateTaskTool,
    DeleteTaskTool,
    ListCalendarEventsTool,
    CreateCalendarEventTool,
    SearchEmailsTool,
    DraftEmailTool,
    SendEmailTool,
]


def register_all_builtins(registry: ToolRegistry, backend: PersonalDataBackend) -> None:
    """Register all built-in tools with the given registry."""
    for tool_cls in ALL_BUILTIN_TOOLS:
        registry.register(tool_cls(backend))


def build_default_registry(backend: PersonalDataBackend | None = None) -> ToolRegistry:
    """A registry holding the full built-in catalog."""
    registry = ToolRegistry()
    register_all_builtins(registry, backend or InMemoryPersonalDataBackend())
    return registry


__all__ = [
    "ALL_BUILTIN_TOOLS",
    "InMemoryPersonalDataBackend",
    "PersonalDataBackend",
    "build_default_registry",
    "register_all_builtins",
]
