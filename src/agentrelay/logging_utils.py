"""Runtime logging helpers."""

from __future__ import annotations

import contextlib
import os
import sys
from collections.abc import Generator
from contextvars import ContextVar
from logging import Handler
from typing import Literal, TextIO

import loguru
from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "chat"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "chat": "{extra[run_id]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[run_id]} | {message}",
}
_CONFIGURED_PROFILE: LogProfile | None = None
_run_context: ContextVar[str] = ContextVar("run_id")


def current_run_id() -> str:
    """Get the id of the run executing in the current context."""
    return _run_context.get("-")


@contextlib.contextmanager
def run_scope(run_id: str) -> Generator[str, None, None]:
    """Mark log records emitted inside the block with ``run_id``."""
    reset_token = _run_context.set(run_id)
    try:
        yield run_id
    finally:
        _run_context.reset(reset_token)


def _build_chat_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["run_id"] = current_run_id()

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    resolved_level = (level or os.getenv("AGENTRELAY_LOG_LEVEL", "INFO")).upper()
    # RichHandler renders the level column itself
    sink: TextIO | Handler = _build_chat_handler() if profile == "chat" else sys.stderr
    logger.remove()
    logger.configure(patcher=inject_context)
    logger.add(
        sink,
        level=resolved_level,
        format=_PROFILE_FORMATS[profile],
        backtrace=False,
        diagnose=False,
    )
    _CONFIGURED_PROFILE = profile
