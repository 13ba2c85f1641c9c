from __future__ import annotations

import pytest

from agentrelay.errors import ConfigurationError, DuplicateFunctionError
from agentrelay.items import ItemHelpers, ToolCallItem
from agentrelay.types import Agent, AgentFunction, FunctionDescriptor, ParameterSchema


def _noop(name: str) -> AgentFunction:
    return AgentFunction(name=name, func=lambda args: "", descriptor=FunctionDescriptor(name=name))


def test_agent_defaults() -> None:
    agent = Agent()

    assert agent.name == "Agent"
    assert agent.model == "gpt-4o"
    assert agent.resolve_instructions({}) == "You are a helpful agent."
    assert agent.functions == ()
    assert agent.parallel_tool_calls is True


def test_agent_rejects_duplicate_function_names() -> None:
    with pytest.raises(DuplicateFunctionError, match="lookup"):
        Agent(name="Dup", functions=[_noop("lookup"), _noop("lookup")])

    assert issubclass(DuplicateFunctionError, ConfigurationError)


def test_resolve_instructions_gets_a_copy_of_context() -> None:
    def instructions(ctx: dict) -> str:
        ctx["touched"] = True
        return f"Serve {ctx['user']}"

    context = {"user": "ada"}

    assert Agent(instructions=instructions).resolve_instructions(context) == "Serve ada"
    assert context == {"user": "ada"}


def test_agents_compare_by_identity() -> None:
    assert Agent(name="Same") != Agent(name="Same")


def test_parameter_schema_from_nested_dict() -> None:
    schema = ParameterSchema.from_dict(
        {
            "type": "array",
            "description": "Tags",
            "required": True,
            "items": {"type": "object", "properties": {"label": {"type": "string", "enum": ["a", "b"]}}},
        }
    )

    assert schema.required is True
    assert schema.items is not None
    assert schema.items.properties is not None
    assert schema.items.properties["label"].enum == ("a", "b")


def test_function_descriptor_declares_context() -> None:
    plain = FunctionDescriptor(name="f", parameters={"q": {"type": "string"}})
    contextual = FunctionDescriptor(name="g", parameters={"context_variables": {"type": "object"}})

    assert isinstance(plain.parameters["q"], ParameterSchema)
    assert plain.declares_context is False
    assert contextual.declares_context is True
    assert AgentFunction(name="f", func=print, descriptor=plain, accepts_context=True).wants_context is True


def test_extract_text_content() -> None:
    assert ItemHelpers.extract_text_content({"content": "plain"}) == "plain"
    assert ItemHelpers.extract_text_content(
        {"content": [{"type": "text", "text": "a"}, {"type": "image_url"}, {"type": "text", "text": "b"}]}
    ) == "ab"
    assert ItemHelpers.extract_text_content({"content": None}) == ""
    assert ItemHelpers.extract_text_content(None) == ""


def test_tool_call_name() -> None:
    item = ToolCallItem(agent=Agent(), raw_item={"id": "c", "function": {"name": "search"}})

    assert ItemHelpers.tool_call_name(item) == "search"
    assert ItemHelpers.tool_call_name(ToolCallItem(agent=Agent(), raw_item={})) == "-"
