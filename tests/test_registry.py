"""Tests for the Vigil tool registry and tool definitions."""

import pytest

from vigil.core.models import RiskLevel, ToolCategory
from vigil.tools import Tool, ToolParameters, ToolRegistry
from vigil.tools.builtin import ALL_BUILTIN_TOOLS, build_default_registry


class EchoParams(ToolParameters):
    text: str


class EchoTool(Tool):
    name = "echo"
    description = "Echo text back"
    category = ToolCategory.COMPUTE
    risk_level = RiskLevel.LOW
    parameters = EchoParams
    idempotent = True

    async def execute(self, params, context):
        return params.text


class TestRegistration:
    def test_register_and_get(self):
        registry = ToolRegistry()
        tool = EchoTool()
        registry.register(tool)
        assert registry.get("echo") is tool
        assert "echo" in registry
        assert len(registry) == 1

    def test_unknown_tool_returns_none(self):
        assert ToolRegistry().get("nope") is None

    def test_duplicate_name_rejected(self):
        registry = ToolRegistry([EchoTool()])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(EchoTool())

    def test_missing_category_rejected(self):
        class Nameless(EchoTool):
            category = "misc"

        with pytest.raises(ValueError, match="category"):
            ToolRegistry([Nameless()])

    def test_parameters_must_be_tool_parameters(self):
        class Loose(EchoTool):
            name = "loose"
            parameters = dict

        with pytest.raises(ValueError, match="ToolParameters"):
            ToolRegistry([Loose()])


class TestQueries:
    def test_default_registry_has_full_catalog(self):
        registry = build_default_registry()
        assert len(registry) == len(ALL_BUILTIN_TOOLS) == 9
        assert [t.name for t in registry][:2] == ["list_tasks", "create_task"]

    def test_by_category(self):
        registry = build_default_registry()
        names = {t.name for t in registry.get_by_category(ToolCategory.EXTERNAL)}
        assert names == {"create_calendar_event", "send_email"}

    def test_by_integration(self):
        registry = build_default_registry()
        names = {t.name for t in registry.get_by_integration("gmail")}
        assert names == {"search_emails", "draft_email", "send_email"}

    def test_up_to_risk(self):
        registry = build_default_registry()
        assert all(t.risk_level == RiskLevel.LOW for t in registry.get_up_to_risk(RiskLevel.LOW))
        assert len(registry.get_up_to_risk(RiskLevel.CRITICAL)) == len(registry)

    def test_available_with_connected_integrations(self):
        registry = build_default_registry()
        names = {t.name for t in registry.get_available(["calendar"])}
        assert "list_calendar_events" in names
        assert "send_email" not in names
        assert "create_task" in names

    def test_schemas(self):
        registry = ToolRegistry([EchoTool()])
        schemas = registry.get_schemas()
        assert schemas[0]["name"] == "echo"
        assert "text" in schemas[0]["input_schema"]["properties"]


class TestDefinition:
    def test_definition_snapshot(self):
        definition = EchoTool().definition
        assert definition.name == "echo"
        assert definition.category == ToolCategory.COMPUTE
        assert definition.idempotent is True
        assert definition.required_integrations == []
        assert definition.input_schema["required"] == ["text"]

    def test_definition_is_frozen(self):
        definition = EchoTool().definition
        with pytest.raises(Exception):
            definition.name = "other"

    def test_send_email_requires_approval(self):
        send = build_default_registry().get("send_email")
        assert send.definition.requires_approval is True
        assert send.definition.required_integrations == ["gmail"]

    def test_repr(self):
        assert repr(EchoTool()) == "<EchoTool echo compute/low>"
