"""Merge streamed completion deltas into one assistant message."""

from __future__ import annotations

from typing import Any


def merge_fields(target: dict[str, Any], source: dict[str, Any]) -> None:
    """Recursively merge ``source`` into ``target``.

    Strings concatenate, lists replace, mappings recurse. ``None`` values
    carry no information and are skipped.
    """
    for key, value in source.items():
        if isinstance(value, list):
            target[key] = value
        elif isinstance(value, str):
            current = target.get(key)
            target[key] = (current if isinstance(current, str) else "") + value
        elif isinstance(value, dict):
            current = target.get(key)
            if not isinstance(current, dict):
                current = {}
                target[key] = current
            merge_fields(current, value)


def merge_chunk(message: dict[str, Any], delta: dict[str, Any]) -> None:
    """Merge one streamed ``delta`` into the in-progress ``message``.

    Tool-call fragments are routed by their ``index`` into
    ``message["tool_calls"]``, which is kept as an index-keyed dict until
    ``finalize_tool_calls`` runs. ``role`` is never merged.
    """
    delta = {key: value for key, value in delta.items() if key != "role"}
    tool_calls = delta.pop("tool_calls", None)

    if tool_calls:
        slots = message.get("tool_calls")
        if not isinstance(slots, dict):
            slots = {}
            message["tool_calls"] = slots
        for fragment in tool_calls:
            _merge_tool_call(slots, fragment)

    merge_fields(message, delta)


def _merge_tool_call(slots: dict[int, dict[str, Any]], fragment: dict[str, Any]) -> None:
    index = fragment.get("index", 0)
    slot = slots.setdefault(index, {})
    for key in ("id", "type"):
        value = fragment.get(key)
        if value is not None and key not in slot:
            slot[key] = value
    function = fragment.get("function")
    if isinstance(function, dict):
        merge_fields(slot.setdefault("function", {}), function)


def finalize_tool_calls(message: dict[str, Any]) -> None:
    """Turn the index-keyed tool-call slots into an ordered list.

    An empty result is normalized to ``None``.
    """
    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, dict):
        tool_calls = [tool_calls[index] for index in sorted(tool_calls)]
    message["tool_calls"] = tool_calls or None
