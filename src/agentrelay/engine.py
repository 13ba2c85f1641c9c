"""Turn engine: drive request/merge/dispatch cycles across agents."""

from __future__ import annotations

import copy
import math
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .backend import CompletionBackend, CompletionRequest, OpenAIBackend
from .config import Settings, get_settings
from .dispatch import ToolDispatcher
from .items import MessageOutputItem, RunItem, ToolCallItem
from .logging_utils import configure_logging, run_scope
from .merge import finalize_tool_calls, merge_chunk
from .schema import encode
from .stream_events import EventProjector, ResponseCompleteEvent, StreamEvent
from .tracing import LogfireTracer, NullTracer, RunTrace, Tracer, configure_logfire
from .types import Agent, Response

RUN_TRACE_NAME = "swarm run"


@dataclass(frozen=True)
class _RunOptions:
    agent: Agent
    messages: list[dict[str, Any]]
    context_variables: dict[str, Any]
    model_override: str | None
    stream: bool
    max_turns: float
    execute_tools: bool
    max_tokens: int | None


class Swarm:
    """Run agents against a model backend, executing tools and handoffs.

    ``run`` returns a ``Response`` (or, with ``stream=True``, the same
    async event sequence that ``run_and_stream`` yields).
    """

    def __init__(
        self,
        backend: CompletionBackend | None = None,
        *,
        tracer: Tracer | None = None,
        dispatcher: ToolDispatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings
        self._backend = backend or OpenAIBackend(
            api_key=settings.api_key if settings else None,
            api_base=settings.api_base if settings else None,
        )
        self._tracer: Tracer = tracer or NullTracer()
        self._dispatcher = dispatcher or ToolDispatcher()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Swarm:
        """Build an engine wired from ``AGENTRELAY_*`` settings."""
        settings = settings or get_settings()
        configure_logging(profile=settings.log_profile, level=settings.log_level)
        tracer: Tracer = NullTracer()
        if settings.tracing == "logfire":
            configure_logfire(send_to_logfire=settings.logfire_send)
            tracer = LogfireTracer()
        return cls(tracer=tracer, settings=settings)

    async def run(
        self,
        agent: Agent,
        messages: list[dict[str, Any]],
        context_variables: dict[str, Any] | None = None,
        model_override: str | None = None,
        stream: bool = False,
        max_turns: float | None = None,
        execute_tools: bool | None = None,
        max_tokens: int | None = None,
    ) -> Response | AsyncIterator[StreamEvent]:
        options = self._options(
            agent, messages, context_variables, model_override, stream, max_turns, execute_tools, max_tokens
        )
        if stream:
            return self._drive(options)

        response: Response | None = None
        async for event in self._drive(options):
            if isinstance(event, ResponseCompleteEvent):
                response = event.response
        if response is None:
            raise RuntimeError("run finished without a response")
        return response

    def run_and_stream(
        self,
        agent: Agent,
        messages: list[dict[str, Any]],
        context_variables: dict[str, Any] | None = None,
        model_override: str | None = None,
        max_turns: float | None = None,
        execute_tools: bool | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Run with a streamed backend and yield events as they happen."""
        options = self._options(
            agent, messages, context_variables, model_override, True, max_turns, execute_tools, max_tokens
        )
        return self._drive(options)

    def shutdown(self) -> None:
        """Flush the observability sink."""
        self._tracer.shutdown()

    def _options(
        self,
        agent: Agent,
        messages: list[dict[str, Any]],
        context_variables: dict[str, Any] | None,
        model_override: str | None,
        stream: bool,
        max_turns: float | None,
        execute_tools: bool | None,
        max_tokens: int | None,
    ) -> _RunOptions:
        settings = self._settings
        if max_turns is None and settings is not None:
            max_turns = settings.max_turns
        if execute_tools is None:
            execute_tools = settings.execute_tools if settings is not None else True
        if max_tokens is None and settings is not None:
            max_tokens = settings.max_tokens
        if model_override is None and settings is not None:
            model_override = settings.model_override
        return _RunOptions(
            agent=agent,
            messages=messages,
            context_variables=context_variables or {},
            model_override=model_override,
            stream=stream,
            max_turns=math.inf if max_turns is None else max_turns,
            execute_tools=execute_tools,
            max_tokens=max_tokens,
        )

    async def _drive(self, options: _RunOptions) -> AsyncIterator[StreamEvent]:
        run_id = uuid.uuid4().hex[:12]
        active_agent = options.agent
        context_variables = copy.deepcopy(options.context_variables)
        history = copy.deepcopy(options.messages)
        init_len = len(history)
        items: list[RunItem] = []
        projector = EventProjector(active_agent)
        metadata = {
            "agent": active_agent.name,
            "model": options.model_override or active_agent.model,
            "stream": options.stream,
            "max_turns": options.max_turns,
            "execute_tools": options.execute_tools,
        }
        logger.info(
            "run.start run_id={} agent={} stream={} max_turns={}",
            run_id,
            active_agent.name,
            options.stream,
            options.max_turns,
        )

        try:
            with self._tracer.run(name=RUN_TRACE_NAME, metadata=metadata) as trace:
                while len(history) - init_len < options.max_turns:
                    agent_event = projector.agent_observed(active_agent)
                    if agent_event is not None:
                        yield agent_event

                    request = self._build_request(active_agent, history, context_variables, options)
                    logger.info(
                        "backend.request run_id={} agent={} model={} messages={} tools={}",
                        run_id,
                        active_agent.name,
                        request.model,
                        len(request.messages),
                        len(request.tools),
                    )
                    if options.stream:
                        message = self._new_stream_message(active_agent)
                        with trace.generation(
                            model=request.model, messages=request.messages, params=_generation_params(request)
                        ) as generation:
                            chunks = aiter(self._backend.stream(request))
                            while True:
                                # scope each pull only; the yield runs in the consumer's context
                                with run_scope(run_id):
                                    try:
                                        chunk = await anext(chunks)
                                    except StopAsyncIteration:
                                        break
                                yield projector.raw(chunk)
                                delta = _chunk_delta(chunk)
                                if delta:
                                    merge_chunk(message, copy.deepcopy(delta))
                            finalize_tool_calls(message)
                            generation.record_output(message)
                    else:
                        message = await self._complete(request, run_id, trace)
                        message["sender"] = active_agent.name
                        finalize_tool_calls(message)
                    logger.debug("backend.completion run_id={} message={}", run_id, message)

                    history.append(message)
                    message_item = MessageOutputItem(agent=active_agent, raw_item=message)
                    items.append(message_item)
                    yield projector.message_output(message_item)

                    tool_calls = message["tool_calls"]
                    if not tool_calls or not options.execute_tools:
                        logger.info("run.turn.end run_id={} tool_calls={}", run_id, len(tool_calls or []))
                        break

                    for tool_call in tool_calls:
                        call_item = ToolCallItem(agent=active_agent, raw_item=tool_call)
                        items.append(call_item)
                        yield projector.tool_called(call_item)

                    with run_scope(run_id):
                        partial, output_items = await self._dispatcher.execute(
                            tool_calls,
                            active_agent.functions,
                            context_variables,
                            agent=active_agent,
                            trace=trace,
                            run_id=run_id,
                        )
                    items.extend(output_items)
                    for output_item in output_items:
                        yield projector.tool_output(output_item)

                    history.extend(partial.messages)
                    context_variables.update(partial.context_variables)
                    if partial.agent is not None:
                        if partial.agent is not active_agent:
                            logger.info(
                                "run.handoff run_id={} from={} to={}", run_id, active_agent.name, partial.agent.name
                            )
                        active_agent = partial.agent

                response = Response(
                    messages=history[init_len:],
                    agent=active_agent,
                    context_variables=context_variables,
                    items=items,
                )
                trace.finish(response)
        except Exception:
            logger.exception("run.error run_id={} agent={}", run_id, active_agent.name)
            raise

        logger.info(
            "run.finish run_id={} agent={} messages={} items={}",
            run_id,
            active_agent.name,
            len(response.messages),
            len(items),
        )
        yield projector.complete(response)

    async def _complete(self, request: CompletionRequest, run_id: str, trace: RunTrace) -> dict[str, Any]:
        with (
            run_scope(run_id),
            trace.generation(
                model=request.model, messages=request.messages, params=_generation_params(request)
            ) as generation,
        ):
            message = await self._backend.complete(request)
            generation.record_output(message)
        return dict(message)

    def _build_request(
        self,
        agent: Agent,
        history: list[dict[str, Any]],
        context_variables: dict[str, Any],
        options: _RunOptions,
    ) -> CompletionRequest:
        instructions = agent.resolve_instructions(context_variables)
        return CompletionRequest(
            model=options.model_override or agent.model,
            messages=[{"role": "system", "content": instructions}, *history],
            tools=_tool_schemas(agent),
            tool_choice=agent.tool_choice,
            parallel_tool_calls=agent.parallel_tool_calls,
            stream=options.stream,
            max_tokens=options.max_tokens,
        )

    @staticmethod
    def _new_stream_message(agent: Agent) -> dict[str, Any]:
        return {
            "content": "",
            "sender": agent.name,
            "role": "assistant",
            "tool_calls": {},
        }


def _tool_schemas(agent: Agent) -> list[dict[str, Any]]:
    schemas: list[dict[str, Any]] = []
    for function in agent.functions:
        schema = encode(function.descriptor)
        schema["function"]["name"] = function.name
        schemas.append(schema)
    return schemas


def _generation_params(request: CompletionRequest) -> dict[str, Any]:
    return {
        "max_tokens": request.max_tokens,
        "tool_choice": request.tool_choice,
        "parallel_tool_calls": request.parallel_tool_calls,
        "stream": request.stream,
    }


def _chunk_delta(chunk: dict[str, Any]) -> dict[str, Any] | None:
    choices = chunk.get("choices")
    if not choices:
        return None
    delta = choices[0].get("delta")
    return delta if isinstance(delta, dict) else None
