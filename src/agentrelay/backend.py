"""Language-model backend contract and the OpenAI chat-completions backend."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from loguru import logger
from openai import AsyncOpenAI


@dataclass(frozen=True)
class CompletionRequest:
    """One backend call."""

    model: str
    messages: list[dict[str, Any]]
    tools: list[dict[str, Any]] = field(default_factory=list)
    tool_choice: str | None = None
    parallel_tool_calls: bool = True
    stream: bool = False
    max_tokens: int | None = None

    def to_params(self) -> dict[str, Any]:
        """Render request keyword arguments for a chat-completions call."""
        params: dict[str, Any] = {
            "model": self.model,
            "messages": self.messages,
            "stream": self.stream,
        }
        if self.tools:
            params["tools"] = self.tools
            params["parallel_tool_calls"] = self.parallel_tool_calls
            if self.tool_choice is not None:
                params["tool_choice"] = self.tool_choice
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        return params


class CompletionBackend(Protocol):
    """Opaque request/response or request/stream model API.

    ``complete`` returns one assistant message as a plain dict.
    ``stream`` yields chat-completion chunks as plain dicts, each with
    ``choices[0].delta`` holding a partial message.
    """

    async def complete(self, request: CompletionRequest) -> dict[str, Any]: ...

    def stream(self, request: CompletionRequest) -> AsyncIterator[dict[str, Any]]: ...


class OpenAIBackend:
    """Backend over ``openai.AsyncOpenAI`` chat completions."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        api_key: str | None = None,
        api_base: str | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=api_base)

    async def complete(self, request: CompletionRequest) -> dict[str, Any]:
        params = request.to_params()
        params["stream"] = False
        completion = await self._client.chat.completions.create(**params)
        message = completion.choices[0].message
        payload: dict[str, Any] = message.model_dump(exclude_none=True)
        payload.setdefault("content", None)
        return payload

    async def stream(self, request: CompletionRequest) -> AsyncIterator[dict[str, Any]]:
        params = request.to_params()
        params["stream"] = True
        stream = await self._client.chat.completions.create(**params)
        async for chunk in stream:
            payload: dict[str, Any] = chunk.model_dump(exclude_none=True)
            logger.debug("backend.chunk model={} payload={}", request.model, payload)
            yield payload
