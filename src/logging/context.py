# src/logging/context.py - v3
"""Run/stage/item context attached to every log record.

One ContextVar holds a frozen snapshot. asyncio tasks copy the context on
creation, so an item bound inside a classification task never leaks into
its siblings or back into the orchestrator.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from typing import Any, Iterator


@dataclass(frozen=True)
class LogContext:
    run_id: str | None = None
    stage: str | None = None
    item_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields, for JSON log injection."""
        return {k: v for k, v in asdict(self).items() if v is not None}


_EMPTY = LogContext()
_current: contextvars.ContextVar[LogContext] = contextvars.ContextVar(
    "iconnormalizer_log_context", default=_EMPTY
)


def get_context() -> LogContext:
    return _current.get()


def _bind(**fields: str | None) -> None:
    _current.set(replace(_current.get(), **fields))


def set_run_context(run_id: str) -> None:
    """Start a new run: stage and item are reset."""
    _current.set(LogContext(run_id=run_id))


def set_stage_context(stage: str | None) -> None:
    _bind(stage=stage)


def set_item_context(item_id: str | None) -> None:
    _bind(item_id=item_id)


@contextmanager
def item_scope(item_id: str) -> Iterator[LogContext]:
    """Bind ``item_id`` for the duration of the block, then restore."""
    token = _current.set(replace(_current.get(), item_id=item_id))
    try:
        yield _current.get()
    finally:
        _current.reset(token)


def clear_context() -> None:
    _current.set(_EMPTY)
