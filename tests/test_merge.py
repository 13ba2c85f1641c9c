from __future__ import annotations

from agentrelay.merge import finalize_tool_calls, merge_chunk, merge_fields


def test_merge_concatenates_content() -> None:
    message: dict = {}
    merge_chunk(message, {"content": "Hel"})
    merge_chunk(message, {"content": "lo"})

    assert message == {"content": "Hello"}


def test_merge_drops_role() -> None:
    message = {"role": "assistant", "content": ""}
    merge_chunk(message, {"role": "user", "content": "hi"})

    assert message == {"role": "assistant", "content": "hi"}


def test_merge_fragments_of_one_tool_call() -> None:
    message: dict = {"tool_calls": {}}
    merge_chunk(
        message,
        {"tool_calls": [{"index": 0, "id": "a", "type": "function", "function": {"name": "ca", "arguments": '{"x":'}}]},
    )
    merge_chunk(message, {"tool_calls": [{"index": 0, "function": {"arguments": "1}"}}]})
    finalize_tool_calls(message)

    assert message["tool_calls"] == [
        {"id": "a", "type": "function", "function": {"name": "ca", "arguments": '{"x":1}'}},
    ]


def test_merge_interleaved_tool_calls_by_index() -> None:
    message: dict = {"tool_calls": {}}
    fragments = [
        {"index": 0, "id": "call_a", "function": {"name": "get_", "arguments": ""}},
        {"index": 1, "id": "call_b", "function": {"name": "lookup", "arguments": '{"q":'}},
        {"index": 0, "function": {"name": "weather", "arguments": '{"city":"Oslo"}'}},
        {"index": 1, "function": {"arguments": '"tea"}'}},
    ]
    for fragment in fragments:
        merge_chunk(message, {"tool_calls": [fragment]})
    finalize_tool_calls(message)

    assert [call["id"] for call in message["tool_calls"]] == ["call_a", "call_b"]
    assert message["tool_calls"][0]["function"] == {"name": "get_weather", "arguments": '{"city":"Oslo"}'}
    assert message["tool_calls"][1]["function"] == {"name": "lookup", "arguments": '{"q":"tea"}'}


def test_merge_keeps_first_id() -> None:
    message: dict = {}
    merge_chunk(message, {"tool_calls": [{"index": 0, "id": "first"}]})
    merge_chunk(message, {"tool_calls": [{"index": 0, "id": "second"}]})
    finalize_tool_calls(message)

    assert message["tool_calls"][0]["id"] == "first"


def test_merge_fields_replaces_lists_and_recurses_objects() -> None:
    target = {"annotations": [1], "meta": {"a": "x"}, "count": 3}
    merge_fields(target, {"annotations": [2, 3], "meta": {"a": "y", "b": "z"}, "count": None})

    assert target == {"annotations": [2, 3], "meta": {"a": "xy", "b": "z"}, "count": 3}


def test_merge_fields_resets_non_string_before_concatenating() -> None:
    target = {"content": None}
    merge_fields(target, {"content": "text"})

    assert target == {"content": "text"}


def test_finalize_normalizes_empty_tool_calls_to_none() -> None:
    streamed = {"content": "done", "tool_calls": {}}
    atomic = {"content": "done", "tool_calls": []}
    missing = {"content": "done"}
    for message in (streamed, atomic, missing):
        finalize_tool_calls(message)
        assert message["tool_calls"] is None
