"""agentrelay - multi-agent tool calling and handoffs over chat-completion models."""

from .backend import CompletionBackend, CompletionRequest, OpenAIBackend
from .engine import Swarm
from .items import ItemHelpers, MessageOutputItem, RunItem, ToolCallItem, ToolCallOutputItem
from .schema import descriptor_from_model
from .stream_events import (
    AgentUpdatedStreamEvent,
    RawResponsesStreamEvent,
    ResponseCompleteEvent,
    RunItemStreamEvent,
    StreamEvent,
)
from .types import Agent, AgentFunction, FunctionDescriptor, ParameterSchema, Response, Result

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentFunction",
    "AgentUpdatedStreamEvent",
    "CompletionBackend",
    "CompletionRequest",
    "FunctionDescriptor",
    "ItemHelpers",
    "MessageOutputItem",
    "OpenAIBackend",
    "ParameterSchema",
    "RawResponsesStreamEvent",
    "Response",
    "ResponseCompleteEvent",
    "Result",
    "RunItem",
    "RunItemStreamEvent",
    "StreamEvent",
    "Swarm",
    "ToolCallItem",
    "ToolCallOutputItem",
    "descriptor_from_model",
]
