"""Run items produced during a turn."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

from .types import Agent

RunItemType = Literal["message_output", "tool_call", "tool_call_output"]


@dataclass(frozen=True)
class MessageOutputItem:
    """Assistant message finalized by one turn."""

    agent: Agent
    raw_item: dict[str, Any]
    type: ClassVar[RunItemType] = "message_output"


@dataclass(frozen=True)
class ToolCallItem:
    """Tool call requested by the model."""

    agent: Agent
    raw_item: dict[str, Any]
    type: ClassVar[RunItemType] = "tool_call"


@dataclass(frozen=True)
class ToolCallOutputItem:
    """Outcome of one dispatched tool call (success or error)."""

    agent: Agent
    raw_item: dict[str, Any]
    output: str
    type: ClassVar[RunItemType] = "tool_call_output"


RunItem = Union[MessageOutputItem, ToolCallItem, ToolCallOutputItem]


class ItemHelpers:
    """Helpers for reading run items."""

    @staticmethod
    def extract_text_content(message: dict[str, Any] | None) -> str:
        if not message:
            return ""
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(
                part.get("text", "") for part in content if isinstance(part, dict) and part.get("type") == "text"
            )
        return ""

    @staticmethod
    def tool_call_name(item: ToolCallItem | ToolCallOutputItem) -> str:
        function = item.raw_item.get("function")
        if isinstance(function, dict):
            name = function.get("name")
            if isinstance(name, str):
                return name
        return "-"
