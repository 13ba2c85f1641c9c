"""Typed stream events emitted by a streamed run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

from .items import MessageOutputItem, RunItem, ToolCallItem, ToolCallOutputItem
from .types import Agent, Response

RunItemEventName = Literal[
    "message_output_created",
    "tool_called",
    "tool_output",
    "handoff_requested",
    "handoff_occurred",
]


@dataclass(frozen=True)
class RawResponsesStreamEvent:
    """Backend chunk passed through untouched."""

    data: dict[str, Any]
    type: ClassVar[str] = "raw_response_event"


@dataclass(frozen=True)
class RunItemStreamEvent:
    """A run item paired with its semantic name."""

    name: RunItemEventName
    item: RunItem
    type: ClassVar[str] = "run_item_stream_event"


@dataclass(frozen=True)
class AgentUpdatedStreamEvent:
    """A different agent is now active."""

    new_agent: Agent
    type: ClassVar[str] = "agent_updated_stream_event"


@dataclass(frozen=True)
class ResponseCompleteEvent:
    """Terminal event carrying the final response."""

    response: Response
    type: ClassVar[str] = "response_complete_event"


StreamEvent = Union[RawResponsesStreamEvent, RunItemStreamEvent, AgentUpdatedStreamEvent, ResponseCompleteEvent]


class EventProjector:
    """Project turn-engine activity onto the ordered event sequence.

    Tracks the last agent observed at the start of a turn so that an
    ``agent_updated_stream_event`` is produced only when it changes.
    """

    def __init__(self, initial_agent: Agent) -> None:
        self._last_agent = initial_agent

    def agent_observed(self, agent: Agent) -> AgentUpdatedStreamEvent | None:
        if agent is self._last_agent:
            return None
        self._last_agent = agent
        return AgentUpdatedStreamEvent(new_agent=agent)

    def raw(self, chunk: dict[str, Any]) -> RawResponsesStreamEvent:
        return RawResponsesStreamEvent(data=chunk)

    def message_output(self, item: MessageOutputItem) -> RunItemStreamEvent:
        return RunItemStreamEvent(name="message_output_created", item=item)

    def tool_called(self, item: ToolCallItem) -> RunItemStreamEvent:
        return RunItemStreamEvent(name="tool_called", item=item)

    def tool_output(self, item: ToolCallOutputItem) -> RunItemStreamEvent:
        return RunItemStreamEvent(name="tool_output", item=item)

    def complete(self, response: Response) -> ResponseCompleteEvent:
        return ResponseCompleteEvent(response=response)
