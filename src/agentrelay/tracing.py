"""Optional observability sink for runs, backend calls and tool dispatches."""

from __future__ import annotations

import contextlib
from collections.abc import Generator, Mapping
from contextlib import AbstractContextManager
from typing import Any, Protocol

import logfire

from .types import Response


class GenerationSpan(Protocol):
    def record_output(self, output: Any) -> None: ...


class ToolSpan(Protocol):
    def finish(self, output: str, *, status: str) -> None: ...


class RunTrace(Protocol):
    """One trace per run."""

    def generation(
        self, *, model: str, messages: list[dict[str, Any]], params: Mapping[str, Any]
    ) -> AbstractContextManager[GenerationSpan]: ...

    def tool(self, *, name: str, call: Mapping[str, Any]) -> AbstractContextManager[ToolSpan]: ...

    def finish(self, response: Response) -> None: ...


class Tracer(Protocol):
    def run(self, *, name: str, metadata: Mapping[str, Any]) -> AbstractContextManager[RunTrace]: ...

    def shutdown(self) -> None: ...


class _NullSpan:
    def record_output(self, output: Any) -> None:
        pass

    def finish(self, output: str, *, status: str) -> None:
        pass


class NullRunTrace:
    @contextlib.contextmanager
    def generation(
        self, *, model: str, messages: list[dict[str, Any]], params: Mapping[str, Any]
    ) -> Generator[GenerationSpan, None, None]:
        yield _NullSpan()

    @contextlib.contextmanager
    def tool(self, *, name: str, call: Mapping[str, Any]) -> Generator[ToolSpan, None, None]:
        yield _NullSpan()

    def finish(self, response: Response) -> None:
        pass


class NullTracer:
    """Tracer used when no observability sink is configured."""

    @contextlib.contextmanager
    def run(self, *, name: str, metadata: Mapping[str, Any]) -> Generator[RunTrace, None, None]:
        yield NullRunTrace()

    def shutdown(self) -> None:
        pass


def configure_logfire(*, send_to_logfire: bool = False, service_name: str = "agentrelay") -> None:
    """Configure Logfire for structured tracing."""
    logfire.configure(
        service_name=service_name,
        console=logfire.ConsoleOptions(
            colors="auto",
            span_style="indented",
        ),
        send_to_logfire=send_to_logfire,
    )


class _LogfireGenerationSpan:
    def __init__(self, span: logfire.LogfireSpan) -> None:
        self._span = span

    def record_output(self, output: Any) -> None:
        self._span.set_attribute("output", output)


class _LogfireToolSpan:
    def __init__(self, span: logfire.LogfireSpan) -> None:
        self._span = span

    def finish(self, output: str, *, status: str) -> None:
        self._span.set_attribute("output", output)
        self._span.set_attribute("status", status)


class _LogfireRunTrace:
    def __init__(self, client: logfire.Logfire, span: logfire.LogfireSpan) -> None:
        self._logfire = client
        self._span = span

    @contextlib.contextmanager
    def generation(
        self, *, model: str, messages: list[dict[str, Any]], params: Mapping[str, Any]
    ) -> Generator[GenerationSpan, None, None]:
        with self._logfire.span(
            "chat completion {model}",
            model=model,
            input=messages,
            model_parameters=dict(params),
        ) as span:
            yield _LogfireGenerationSpan(span)

    @contextlib.contextmanager
    def tool(self, *, name: str, call: Mapping[str, Any]) -> Generator[ToolSpan, None, None]:
        with self._logfire.span("tool {tool_name}", tool_name=name, input=dict(call)) as span:
            yield _LogfireToolSpan(span)

    def finish(self, response: Response) -> None:
        self._span.set_attribute("output_messages", response.messages)
        self._span.set_attribute("context_variables", response.context_variables)
        self._span.set_attribute("final_agent", response.agent.name if response.agent else None)


class LogfireTracer:
    """Tracer backed by logfire spans.

    A backend or tool error that propagates out of a span is recorded on it
    by logfire itself.
    """

    def __init__(self, client: logfire.Logfire | None = None) -> None:
        self._logfire = client or logfire.DEFAULT_LOGFIRE_INSTANCE

    @contextlib.contextmanager
    def run(self, *, name: str, metadata: Mapping[str, Any]) -> Generator[RunTrace, None, None]:
        with self._logfire.span("{run_name} {agent}", run_name=name, **metadata) as span:
            yield _LogfireRunTrace(self._logfire, span)

    def shutdown(self) -> None:
        self._logfire.force_flush()
