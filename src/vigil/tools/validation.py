"""
Vigil Parameter Validation

Validates raw, LLM-provided arguments against a tool's pydantic parameter
model and translates pydantic's errors into flat ``FieldError`` records
with dotted paths. Deterministic and free of I/O.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from vigil.core.models import FieldError
from vigil.tools.models import Tool

ROOT_PATH = "(root)"

# pydantic error type -> human description of what was expected
_EXPECTED_BY_TYPE = {
    "string_type": "string",
    "int_type": "integer",
    "int_parsing": "integer",
    "int_from_float": "integer",
    "float_type": "number",
    "float_parsing": "number",
    "bool_type": "boolean",
    "bool_parsing": "boolean",
    "list_type": "array",
    "dict_type": "object",
    "model_type": "object",
    "model_attributes_type": "object",
    "date_type": "ISO 8601 date",
    "date_parsing": "ISO 8601 date",
    "date_from_datetime_parsing": "ISO 8601 date",
    "date_from_datetime_inexact": "ISO 8601 date",
    "datetime_type": "ISO 8601 datetime",
    "datetime_parsing": "ISO 8601 datetime",
    "datetime_from_date_parsing": "ISO 8601 datetime",
    "value_error": None,
}

_JSON_TYPE_NAMES = {
    str: "string",
    bool: "boolean",
    int: "integer",
    float: "number",
    list: "array",
    tuple: "array",
    dict: "object",
    type(None): "null",
}


class ValidationResult(BaseModel):
    """Outcome of validating raw parameters for one tool."""
    valid: bool
    parsed: Any = None
    errors: list[FieldError] = Field(default_factory=list)


def _expected(err: dict[str, Any]) -> str | None:
    ctx = err.get("ctx") or {}
    kind = err["type"]
    if "expected" in ctx:
        return f"one of [{ctx['expected']}]" if kind in ("enum", "literal_error") else str(ctx["expected"])
    if "min_length" in ctx:
        return f"at least {ctx['min_length']} {'item' if kind.startswith('too_') else 'character'}s"
    if "max_length" in ctx:
        return f"at most {ctx['max_length']} {'item' if kind.startswith('too_') else 'character'}s"
    for bound, word in (("ge", "at least"), ("gt", "greater than"), ("le", "at most"), ("lt", "less than")):
        if bound in ctx:
            return f"{word} {ctx[bound]}"
    return _EXPECTED_BY_TYPE.get(kind)


def _received(err: dict[str, Any]) -> str | None:
    if err["type"] == "missing":
        return "missing"
    if err["type"] == "extra_forbidden":
        return None
    value = err.get("input")
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def _message(err: dict[str, Any]) -> str:
    if err["type"] == "missing":
        return "Required"
    if err["type"] == "extra_forbidden":
        return "Unknown field"
    return err["msg"]


def to_field_errors(exc: ValidationError) -> list[FieldError]:
    """Flatten a pydantic ``ValidationError`` into ``FieldError`` records."""
    return [
        FieldError(
            path=".".join(str(part) for part in err["loc"]) or ROOT_PATH,
            message=_message(err),
            expected=_expected(err),
            received=_received(err),
        )
        for err in exc.errors()
    ]


def validate_parameters(tool: Tool, raw: Any) -> ValidationResult:
    """Validate ``raw`` against ``tool.parameters``.

    Missing fields, wrong types, format violations and unknown fields are
    all reported in one pass. Non-mapping input yields a single root error.
    """
    try:
        parsed = tool.parameters.model_validate(raw)
    except ValidationError as exc:
        return ValidationResult(valid=False, errors=to_field_errors(exc))
    return ValidationResult(valid=True, parsed=parsed)


def format_errors_for_llm(errors: list[FieldError], tool_name: str) -> str:
    """Render validation errors as a retry prompt for the language model."""
    lines = []
    for e in errors:
        line = f"- {e.path}: {e.message}"
        if e.expected:
            line += f" (expected: {e.expected})"
        if e.received:
            line += f" (received: {e.received})"
        lines.append(line)
    error_list = "\n".join(lines)
    return (
        f'Parameter validation failed for tool "{tool_name}":\n{error_list}\n\n'
        "Please provide valid parameters and try again."
    )
