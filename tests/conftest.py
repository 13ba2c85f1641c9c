from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest

from agentrelay.backend import CompletionRequest
from agentrelay.types import Response


@dataclass
class FakeBackend:
    """Scripted backend: pops one completion (or one chunk list) per request."""

    completions: list[dict[str, Any]] = field(default_factory=list)
    streams: list[list[dict[str, Any]]] = field(default_factory=list)
    requests: list[CompletionRequest] = field(default_factory=list)
    error: Exception | None = None

    async def complete(self, request: CompletionRequest) -> dict[str, Any]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.completions.pop(0))

    async def stream(self, request: CompletionRequest) -> AsyncIterator[dict[str, Any]]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        for chunk in self.streams.pop(0):
            yield copy.deepcopy(chunk)


@dataclass
class _RecordingSpan:
    events: list[tuple[str, Any]]
    kind: str

    def record_output(self, output: Any) -> None:
        self.events.append((f"{self.kind}.output", output))

    def finish(self, output: str, *, status: str) -> None:
        self.events.append((f"{self.kind}.finish", (output, status)))


@dataclass
class _RecordingRunTrace:
    events: list[tuple[str, Any]]

    @contextmanager
    def generation(self, *, model: str, messages: list[dict[str, Any]], params: Any) -> Iterator[_RecordingSpan]:
        self.events.append(("generation.start", model))
        try:
            yield _RecordingSpan(self.events, "generation")
        except Exception as exc:
            self.events.append(("generation.error", str(exc)))
            raise

    @contextmanager
    def tool(self, *, name: str, call: Any) -> Iterator[_RecordingSpan]:
        self.events.append(("tool.start", name))
        yield _RecordingSpan(self.events, "tool")

    def finish(self, response: Response) -> None:
        self.events.append(("run.finish", response))


@dataclass
class RecordingTracer:
    events: list[tuple[str, Any]] = field(default_factory=list)
    shutdowns: int = 0

    @contextmanager
    def run(self, *, name: str, metadata: Any) -> Iterator[_RecordingRunTrace]:
        self.events.append(("run.start", dict(metadata)))
        try:
            yield _RecordingRunTrace(self.events)
        except Exception as exc:
            self.events.append(("run.error", str(exc)))
            raise

    def shutdown(self) -> None:
        self.shutdowns += 1


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def tracer() -> RecordingTracer:
    return RecordingTracer()
