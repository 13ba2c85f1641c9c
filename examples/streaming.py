"""Streaming examples for agentrelay.

This module walks through the event stream of a run:
1. Token-by-token output from raw backend chunks
2. Higher-level run item and agent events
3. A combined view with tokens for messages and notes for tool calls

Requires ``AGENTRELAY_API_KEY`` (or ``OPENAI_API_KEY``) in the environment.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from agentrelay import (
    Agent,
    AgentFunction,
    AgentUpdatedStreamEvent,
    FunctionDescriptor,
    ItemHelpers,
    RawResponsesStreamEvent,
    ResponseCompleteEvent,
    RunItemStreamEvent,
    Swarm,
    ToolCallOutputItem,
)

# ============================================================================
# TOOLS
# ============================================================================


def current_time(args: dict[str, Any]) -> str:
    return time.strftime("%H:%M:%S")


def calculate(args: dict[str, Any]) -> str:
    operation, a, b = args["operation"], args["a"], args["b"]
    if operation == "add":
        result = a + b
    elif operation == "subtract":
        result = a - b
    elif operation == "multiply":
        result = a * b
    elif operation == "divide":
        if b == 0:
            raise ZeroDivisionError("Cannot divide by zero")
        result = a / b
    else:
        raise ValueError(f"Unknown operation: {operation}")
    return f"The result of {a} {operation} {b} is {result}"


TIME_TOOL = AgentFunction(
    name="current_time",
    func=current_time,
    descriptor=FunctionDescriptor(name="current_time", description="Get the current time"),
)

CALCULATE_TOOL = AgentFunction(
    name="calculate",
    func=calculate,
    descriptor=FunctionDescriptor(
        name="calculate",
        description="Perform a mathematical operation",
        parameters={
            "operation": {
                "type": "string",
                "required": True,
                "enum": ["add", "subtract", "multiply", "divide"],
                "description": "The operation to perform",
            },
            "a": {"type": "number", "required": True, "description": "First operand"},
            "b": {"type": "number", "required": True, "description": "Second operand"},
        },
    ),
)


def _delta_content(event: RawResponsesStreamEvent) -> str:
    choices = event.data.get("choices") or [{}]
    return (choices[0].get("delta") or {}).get("content") or ""


# ============================================================================
# EXAMPLES
# ============================================================================


async def token_by_token(swarm: Swarm) -> None:
    print("\nToken-by-Token Streaming")
    print("=" * 30)

    agent = Agent(name="BasicAgent", instructions="You are a helpful assistant. Keep your responses concise.")
    stream = swarm.run_and_stream(agent, [{"role": "user", "content": "Tell me a short joke about programming."}])
    async for event in stream:
        if isinstance(event, RawResponsesStreamEvent):
            print(_delta_content(event), end="", flush=True)
    print()


async def high_level_events(swarm: Swarm) -> None:
    print("\nHigher-Level Events")
    print("=" * 30)

    agent = Agent(
        name="ToolsAgent",
        instructions="Use the time tool for the time and the calculate tool for arithmetic.",
        functions=[TIME_TOOL, CALCULATE_TOOL],
    )
    stream = swarm.run_and_stream(agent, [{"role": "user", "content": "What time is it? Then calculate 15 * 7."}])
    async for event in stream:
        if isinstance(event, RunItemStreamEvent):
            print(f"Event: {event.name}")
            if event.name == "message_output_created":
                print(f"Message: {ItemHelpers.extract_text_content(event.item.raw_item)}")
            elif event.name == "tool_called":
                function = event.item.raw_item["function"]
                print(f"Tool called: {function['name']} {function['arguments']}")
            elif isinstance(event.item, ToolCallOutputItem):
                print(f"Tool output: {event.item.output}")
        elif isinstance(event, AgentUpdatedStreamEvent):
            print(f"Agent changed to: {event.new_agent.name}")
        elif isinstance(event, ResponseCompleteEvent):
            print(f"Response complete: {len(event.response.messages)} messages, {len(event.response.items)} items")


async def combined(swarm: Swarm) -> None:
    print("\nCombined Approach")
    print("=" * 30)

    agent = Agent(
        name="CombinedAgent",
        instructions="When asked to calculate, use the calculate tool.",
        functions=[CALCULATE_TOOL],
    )
    stream = swarm.run_and_stream(agent, [{"role": "user", "content": "Can you calculate 42 * 18?"}])
    async for event in stream:
        if isinstance(event, RawResponsesStreamEvent):
            print(_delta_content(event), end="", flush=True)
        elif isinstance(event, RunItemStreamEvent) and event.name == "tool_called":
            print(f"\n[Tool called: {ItemHelpers.tool_call_name(event.item)}]")
        elif isinstance(event, RunItemStreamEvent) and isinstance(event.item, ToolCallOutputItem):
            print(f"[Tool result: {event.item.output}]")
        elif isinstance(event, ResponseCompleteEvent):
            print(f"\n[Response complete, final agent: {event.response.agent.name}]")


# ============================================================================
# MAIN DEMONSTRATION
# ============================================================================


async def run_all() -> None:
    """Run every streaming example against the configured backend."""
    swarm = Swarm.from_settings()
    try:
        await token_by_token(swarm)
        await high_level_events(swarm)
        await combined(swarm)
    finally:
        swarm.shutdown()
    print("\nAll examples completed!")


if __name__ == "__main__":
    asyncio.run(run_all())
