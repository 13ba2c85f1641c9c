from __future__ import annotations

import json
from typing import Any

import pytest
from logfire.testing import CaptureLogfire

from agentrelay.engine import Swarm
from agentrelay.tracing import LogfireTracer
from agentrelay.types import Agent, AgentFunction, FunctionDescriptor


def _spans(capfire: CaptureLogfire) -> list[dict[str, Any]]:
    return capfire.exporter.exported_spans_as_dict(parse_json_attributes=True)


def _by_message(spans: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {span["attributes"]["logfire.msg"]: span for span in spans}


def _tool_call_message(name: str) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [{"id": "call_1", "type": "function", "function": {"name": name, "arguments": json.dumps({})}}],
    }


@pytest.mark.asyncio
async def test_logfire_tracer_records_run_generation_and_tool_spans(backend, capfire: CaptureLogfire) -> None:
    backend.completions = [_tool_call_message("ping"), {"role": "assistant", "content": "done"}]
    ping = AgentFunction(name="ping", func=lambda args: "pong", descriptor=FunctionDescriptor(name="ping"))
    agent = Agent(name="Pinger", functions=[ping])

    await Swarm(backend, tracer=LogfireTracer()).run(agent, [{"role": "user", "content": "ping"}], max_turns=5)

    spans = _spans(capfire)
    assert [span["attributes"]["logfire.msg"] for span in spans] == [
        "chat completion gpt-4o",
        "tool ping",
        "chat completion gpt-4o",
        "swarm run Pinger",
    ]
    by_message = _by_message(spans)
    run = by_message["swarm run Pinger"]
    assert run["attributes"]["agent"] == "Pinger"
    assert run["attributes"]["max_turns"] == 5
    assert run["attributes"]["final_agent"] == "Pinger"
    assert run["attributes"]["output_messages"][-1]["content"] == "done"

    tool = by_message["tool ping"]
    assert tool["attributes"]["output"] == "pong"
    assert tool["attributes"]["status"] == "ok"
    assert tool["parent"]["span_id"] == run["context"]["span_id"]

    generation = spans[0]
    assert generation["attributes"]["model"] == "gpt-4o"
    assert generation["attributes"]["output"]["tool_calls"][0]["function"]["name"] == "ping"


@pytest.mark.asyncio
async def test_logfire_tracer_records_backend_error(backend, capfire: CaptureLogfire) -> None:
    backend.error = ConnectionError("network down")

    with pytest.raises(ConnectionError):
        await Swarm(backend, tracer=LogfireTracer()).run(Agent(name="Solo"), [])

    by_message = _by_message(_spans(capfire))
    assert set(by_message) == {"chat completion gpt-4o", "swarm run Solo"}
    for span in by_message.values():
        exception = next(event for event in span["events"] if event["name"] == "exception")
        assert exception["attributes"]["exception.type"] == "ConnectionError"
        assert exception["attributes"]["exception.message"] == "network down"
    assert "final_agent" not in by_message["swarm run Solo"]["attributes"]


def test_logfire_tracer_shutdown_flushes(capfire: CaptureLogfire) -> None:
    LogfireTracer().shutdown()
