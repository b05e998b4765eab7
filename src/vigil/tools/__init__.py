"""
Vigil Tool System

Every tool call from the agent passes through the orchestrator before
the tool body runs:

    Agent → ExecutionRequest → Validator → Integration Check → Autonomy → Execute | Approval

Components:
- Tool: abstract tool with static safety metadata and a pydantic parameter model
- ToolRegistry: explicit name-keyed catalog handed to the orchestrator
- validate_parameters: raw arguments → typed parameters or FieldErrors
- Built-in tools: tasks, calendar, email (see ``vigil.tools.builtin``)
"""

from vigil.tools.models import Tool, ToolDefinition, ToolParameters
from vigil.tools.registry import ToolRegistry
from vigil.tools.validation import ValidationResult, format_errors_for_llm, validate_parameters

__all__ = [
    "Tool",
    "ToolDefinition",
    "ToolParameters",
    "ToolRegistry",
    "ValidationResult",
    "format_errors_for_llm",
    "validate_parameters",
]
