"""Tagged console logging for the analyzer.

Every module logs through :func:`log_event` so console output keeps one
``[LEVEL][Tag] message | key=value`` shape.
"""
from __future__ import annotations

import logging
import time
from typing import Any

_logger = logging.getLogger("multispectrum")
if not _logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(levelname)s][%(tag)s] %(message)s")
    handler.setFormatter(formatter)
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "Analyzer")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})

# key -> monotonic time of last emission
_throttle_marks: dict[str, float] = {}


def _level_value(level: str) -> int:
    level_name = (level or "INFO").upper()
    if level_name == "WARN":
        level_name = "WARNING"
    value = getattr(logging, level_name, logging.INFO)
    return value if isinstance(value, int) else logging.INFO


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    if fields:
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(_level_value(level), message, tag=tag)


def log_throttled(key: str, interval_s: float, level: str, tag: str, message: str,
                  now: float | None = None, **fields: Any) -> bool:
    """Like :func:`log_event` but emits at most once per ``interval_s`` per key.

    Returns True when the message was emitted.
    """
    current = time.monotonic() if now is None else now
    last = _throttle_marks.get(key)
    if last is not None and current - last < interval_s:
        return False
    _throttle_marks[key] = current
    log_event(level, tag, message, **fields)
    return True


def reset_throttle() -> None:
    _throttle_marks.clear()


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)
