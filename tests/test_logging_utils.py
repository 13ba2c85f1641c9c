from __future__ import annotations

import pytest
from loguru import logger
from rich.logging import RichHandler

from agentrelay import logging_utils
from agentrelay.logging_utils import configure_logging, current_run_id, run_scope


def test_run_scope_sets_and_restores_run_id() -> None:
    assert current_run_id() == "-"

    with run_scope("abc123") as run_id:
        assert run_id == "abc123"
        assert current_run_id() == "abc123"
        with run_scope("nested"):
            assert current_run_id() == "nested"
        assert current_run_id() == "abc123"

    assert current_run_id() == "-"


def test_configure_logging_injects_run_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", None)
    configure_logging(level="DEBUG")
    records: list[str] = []
    sink_id = logger.add(lambda message: records.append(message.record["extra"]["run_id"]), level="DEBUG")
    try:
        logger.info("outside")
        with run_scope("r1"):
            logger.info("inside")
    finally:
        logger.remove(sink_id)

    assert records == ["-", "r1"]


def test_configure_logging_is_idempotent_per_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    removed: list[object] = []
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", "default")
    monkeypatch.setattr(logging_utils.logger, "remove", lambda *args: removed.append(args))

    configure_logging(profile="default")

    assert removed == []


def test_chat_profile_routes_through_rich(monkeypatch: pytest.MonkeyPatch) -> None:
    sinks: list[object] = []
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", None)
    monkeypatch.setattr(logging_utils.logger, "remove", lambda *args: None)
    monkeypatch.setattr(logging_utils.logger, "add", lambda sink, **kwargs: sinks.append(sink))
    monkeypatch.setattr(logging_utils.logger, "configure", lambda **kwargs: None)

    configure_logging(profile="chat", level="debug")

    assert len(sinks) == 1
    assert isinstance(sinks[0], RichHandler)
    assert logging_utils._CONFIGURED_PROFILE == "chat"
