"""Centralized logging helpers.

Every module logs through the standard ``logging`` package with a module
level ``logger``. Structured DEBUG records carry their context through
``extra_context`` so a handler can render them without string parsing.
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants


class _ContextFormatter(logging.Formatter):
    """Append structured context (if any) to the base message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        ctx = getattr(record, "context", None)
        if not ctx:
            return base
        rendered = " ".join(f"{k}={v}" for k, v in sorted(ctx.items()))
        return f"{base} [{rendered}]"


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    Level precedence: explicit argument, then ``REALDEPS_LOG_LEVEL``, then
    ``Constants.DEFAULT_LOG_LEVEL``.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or Constants.DEFAULT_LOG_LEVEL).upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = _ContextFormatter(Constants.LOG_FORMAT)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level_value)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call, dropping None values."""
    return {"context": {k: v for k, v in kwargs.items() if v is not None}}


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed time so far (or total, once the block has exited)."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 3)
