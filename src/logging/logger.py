# src/logging/logger.py - v3
"""Log setup for the CLI: context filter, JSON and text formatters.

Handlers hang off the ``iconnormalizer`` logger only, so library loggers
keep their own configuration. Everything goes to stderr; stdout is kept
for command output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from iconnormalizer.logging.context import get_context

ROOT_LOGGER = "iconnormalizer"

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "PIL")

_CONTEXT_FIELDS = ("run_id", "stage", "item_id")


class ContextFilter(logging.Filter):
    """Copy the current run/stage/item context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context()
        for name in _CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, getattr(ctx, name))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Structured payloads passed as ``extra={"data": {...}}`` land under
    ``"data"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            name: getattr(record, name)
            for name in _CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        }
        if context:
            entry["context"] = context
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``2024-01-02 03:04:05 INFO     name [stage] (item) - message``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s%(ctx)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        ctx = ""
        stage = getattr(record, "stage", None)
        item_id = getattr(record, "item_id", None)
        if stage:
            ctx += f" [{stage}]"
        if item_id:
            ctx += f" ({item_id})"
        record.ctx = ctx
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 5,
) -> logging.Logger:
    """Configure the ``iconnormalizer`` logger; safe to call repeatedly.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Optional path of an additional rotating log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    context_filter = ContextFilter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from iconnormalizer.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root_logger
