"""
shieldpool.logging
------------------

Structured logging for the pool and its CLI:

- JSON lines or a concise (optionally colored) text format
- Context-local fields via `contextvars` (action, tx, ...), bound per operation
- Safe JSON serialization (bytes -> hex, dataclasses -> dicts, Fr -> decimal)

Handlers are installed on the `shieldpool` logger only, so embedding hosts keep
control of their root logger.

Usage
-----
    from shieldpool import logging as plog

    plog.configure(level="INFO", json=False)   # once at process start
    log = logging.getLogger(__name__)

    with plog.op_scope(action="withdraw"):
        log.info("withdrawal accepted", extra={"fee": 2})
"""

from __future__ import annotations

import datetime as _dt
import io
import json as _json
import logging
import os
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional, Union

ROOT_LOGGER = "shieldpool"

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_SHIELDPOOL_LOG_CONTEXT", default={})

# LogRecord attributes that are not user extras.
_RESERVED = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "taskName", "message", "asctime",
    )
)


# ----------------------------
# Context
# ----------------------------


def context() -> Dict[str, Any]:
    """Copy of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def op_scope(**fields: Any) -> Iterator[None]:
    """Bind `fields` for the duration of one pool operation, then restore."""
    token = _LOG_CONTEXT.set({**_LOG_CONTEXT.get(), **{k: _coerce_value(v) for k, v in fields.items()}})
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    if is_dataclass(v) and not isinstance(v, type):
        # Field elements render as their decimal form.
        if hasattr(v, "to_decimal"):
            return v.to_decimal()
        return asdict(v)
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _coerce_value(v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RESERVED
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return _json.dumps(payload, default=str, separators=(",", ":"))


_LEVEL_COLOR = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1m\x1b[35m",
}
_RESET = "\x1b[0m"


def _supports_color(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty()) and os.environ.get("NO_COLOR") is None


class TextFormatter(logging.Formatter):
    """
    One line per record:
      2026-01-05T12:34:56.789+00:00 | INFO  | shieldpool.pool | action=withdraw fee=2 | withdrawal accepted
    """

    def __init__(self, stream: Any = None) -> None:
        super().__init__()
        self._color = _supports_color(stream) if stream is not None else False

    def format(self, record: logging.LogRecord) -> str:
        fields = {**context(), **_extras(record)}
        lvl = f"{record.levelname:<5}"
        if self._color:
            lvl = f"{_LEVEL_COLOR.get(record.levelno, '')}{lvl}{_RESET}"
        line = f"{_utcnow_iso()} | {lvl} | {record.name}"
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Setup
# ----------------------------


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def configure(
    *,
    level: Union[str, int] = "INFO",
    json: Optional[bool] = None,
    stream: Optional[io.TextIOBase] = None,
) -> logging.Logger:
    """
    Install a single console handler on the `shieldpool` logger.

    `json=None` picks JSON when the stream is not a TTY and text otherwise.
    Calling again replaces the previous handler.
    """
    stream = stream or sys.stderr
    chosen_json = (not _supports_color(stream)) if json is None else json

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_coerce_level(level))
    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter() if chosen_json else TextFormatter(stream))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


__all__ = [
    "configure",
    "bind",
    "clear_context",
    "context",
    "op_scope",
    "JSONFormatter",
    "TextFormatter",
    "ROOT_LOGGER",
]
