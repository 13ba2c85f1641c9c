"""Tool dispatch: resolve, validate, invoke and normalize tool calls."""

from __future__ import annotations

import inspect
import json
import time
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from .errors import ArgumentParseError, ResultCoercionError, ToolDispatchError, ToolNotFoundError
from .items import ToolCallOutputItem
from .schema import validate
from .tracing import NullRunTrace, RunTrace
from .types import CONTEXT_VARIABLES_NAME, Agent, AgentFunction, Response, Result

STATUS_OK = "ok"
STATUS_NOT_FOUND = "not_found"
STATUS_INVALID_ARGUMENTS = "invalid_arguments"
STATUS_ERROR = "error"


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


def coerce_result(value: Any) -> Result:
    """Discriminate a tool's return value into a ``Result``.

    ``Result`` passes through, an ``Agent`` becomes a handoff, anything else
    is rendered with ``str``.
    """
    if isinstance(value, Result):
        return value
    if isinstance(value, Agent):
        return Result(value=json.dumps({"assistant": value.name}), agent=value)
    try:
        return Result(value=str(value))
    except Exception as exc:
        raise ResultCoercionError(
            f"Failed to cast response of type {type(value).__name__} to string. "
            f"Make sure agent functions return a string or Result object. Error: {exc}"
        ) from exc


def parse_arguments(function_name: str, raw: Any) -> dict[str, Any]:
    """Parse a tool call's argument payload into a mapping."""
    if isinstance(raw, Mapping):
        return dict(raw)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ArgumentParseError(function_name, f"arguments are not valid JSON ({exc})") from None
    if not isinstance(parsed, dict):
        raise ArgumentParseError(function_name, f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _call_function_field(call: Mapping[str, Any], key: str) -> Any:
    function = call.get("function")
    if isinstance(function, Mapping):
        return function.get(key)
    return None


class ToolDispatcher:
    """Execute the tool calls of one assistant message, strictly in order."""

    async def execute(
        self,
        tool_calls: Sequence[Mapping[str, Any]],
        functions: Sequence[AgentFunction],
        context_variables: dict[str, Any],
        *,
        agent: Agent,
        trace: RunTrace | None = None,
        run_id: str = "-",
    ) -> tuple[Response, list[ToolCallOutputItem]]:
        """Dispatch ``tool_calls`` against ``functions``.

        Each successful result's context updates are merged into
        ``context_variables`` before the next call runs, and collected on the
        returned partial ``Response``. Recoverable failures become
        ``Error: ...`` tool results; ``ResultCoercionError`` propagates.
        """
        trace = trace or NullRunTrace()
        function_map = {function.name: function for function in functions}
        partial = Response(messages=[], agent=None, context_variables={})
        output_items: list[ToolCallOutputItem] = []

        for call in tool_calls:
            name = str(_call_function_field(call, "name") or "")
            with trace.tool(name=name, call=call) as span:
                output, status, result = await self._dispatch_one(call, name, function_map, context_variables, run_id)
                span.finish(output, status=status)

            partial.messages.append({
                "role": "tool",
                "tool_call_id": call.get("id"),
                "tool_name": name,
                "content": output,
            })
            output_items.append(
                ToolCallOutputItem(
                    agent=agent,
                    raw_item={
                        "id": call.get("id"),
                        "type": call.get("type"),
                        "function": {"name": name, "output": output},
                    },
                    output=output,
                )
            )
            if result is None:
                continue
            context_variables.update(result.context_variables)
            partial.context_variables.update(result.context_variables)
            if result.agent is not None:
                partial.agent = result.agent

        return partial, output_items

    async def _dispatch_one(
        self,
        call: Mapping[str, Any],
        name: str,
        function_map: Mapping[str, AgentFunction],
        context_variables: dict[str, Any],
        run_id: str,
    ) -> tuple[str, str, Result | None]:
        start = time.monotonic()
        try:
            raw = await self._invoke(call, name, function_map, context_variables, run_id)
        except ToolNotFoundError as exc:
            logger.warning("tool.call.not_found name={} run_id={}", name, run_id)
            return f"Error: {exc}", STATUS_NOT_FOUND, None
        except ToolDispatchError as exc:
            logger.warning("tool.call.invalid name={} run_id={} error={}", name, run_id, exc)
            return f"Error: {exc}", STATUS_INVALID_ARGUMENTS, None
        except Exception as exc:
            # Tool bodies may raise anything; the model sees the error and may retry.
            logger.exception("tool.call.error name={} run_id={}", name, run_id)
            return f"Error: {str(exc) or type(exc).__name__}", STATUS_ERROR, None
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)

        result = coerce_result(raw)
        return result.value, STATUS_OK, result

    async def _invoke(
        self,
        call: Mapping[str, Any],
        name: str,
        function_map: Mapping[str, AgentFunction],
        context_variables: dict[str, Any],
        run_id: str,
    ) -> Any:
        function = function_map.get(name)
        if function is None:
            raise ToolNotFoundError(name)

        args = parse_arguments(name, _call_function_field(call, "arguments"))
        if function.wants_context:
            args[CONTEXT_VARIABLES_NAME] = context_variables
        validated = validate(args, function.descriptor)
        self._log_tool_call(name, validated, run_id)

        raw = function.func(validated)
        if inspect.isawaitable(raw):
            raw = await raw
        return raw

    def _log_tool_call(self, name: str, kwargs: Mapping[str, Any], run_id: str) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            if key == CONTEXT_VARIABLES_NAME:
                continue
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            if value.startswith("{") and not value.endswith("}"):
                value = value + "}"
            if value.startswith("[") and not value.endswith("]"):
                value = value + "]"
            params.append(f"{key}={value}")
        params_str = ", ".join(params)
        logger.info("tool.call.start name={} run_id={} {{ {} }}", name, run_id, params_str)
