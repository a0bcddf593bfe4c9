"""
Structured logging for catalogsync.

Two output formats:
- text: human-readable, optionally colored, for terminals
- json: one JSON object per line, for log aggregation

Library modules only ever call ``logging.getLogger(...)``; the host
application decides the format by calling ``setup_logging`` once.

Example:
    >>> from catalogsync.logging import get_logger, setup_logging
    >>> setup_logging(level=logging.INFO, log_format="json",
    ...               static_fields={"service": "catalogsync"})
    >>> log = get_logger("ResourceSync", run_id="2024-06-01T10:00")
    >>> log.info("Sync started")
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, TextIO


# Attributes every LogRecord has; anything else was passed via ``extra``.
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "asctime",
        "taskName",
    }
)

NOISY_LOGGERS = ("urllib3", "aiohttp", "asyncio")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """Formats each record as one JSON object."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_location: bool = False,
        static_fields: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_location = include_location
        self.static_fields = dict(static_fields or {})

    @staticmethod
    def _timestamp(record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {}
        if self.include_timestamp:
            data["timestamp"] = self._timestamp(record)
        if self.include_level:
            data["level"] = record.levelname
        if self.include_logger:
            data["logger"] = record.name
        data["message"] = record.getMessage()
        data.update(self.static_fields)

        context = _extra_fields(record)
        if context:
            data["context"] = context

        if self.include_location:
            data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            data["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
            }

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter with optional ANSI colors and context."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_context: bool = False) -> None:
        super().__init__(fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        self.use_colors = use_colors
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        output = super().format(record)
        if self.include_context:
            context = _extra_fields(record)
            if context:
                output += " " + " ".join(f"{k}={v!r}" for k, v in sorted(context.items()))
        if self.use_colors and record.levelname in self.COLORS:
            output = f"{self.COLORS[record.levelname]}{output}{self.RESET}"
        return output


class ContextLogger:
    """
    Logger wrapper that attaches bound context to every record.

    >>> log = ContextLogger("DeferredDraftStore", {"container": "drafts"})
    >>> log.bind(key="shoes").info("Saved")
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None) -> None:
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> ContextLogger:
        """Return a new logger with additional context."""
        return ContextLogger(self._logger.name, {**self._context, **context})

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        extra = {**self._context, **kwargs.pop("extra", {})}
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)


def setup_logging(
    level: int | str = logging.INFO,
    log_format: str = "text",
    static_fields: dict[str, Any] | None = None,
    log_file: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Args:
        level: Log level (int or name such as "DEBUG")
        log_format: "text" or "json"
        static_fields: Fields added to every JSON record (e.g. service name)
        log_file: Optional file receiving the same records
        stream: Console stream (default: stderr)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JSONFormatter(static_fields=static_fields)
    elif log_format == "text":
        output = stream or sys.stderr
        formatter = TextFormatter(use_colors=hasattr(output, "isatty") and output.isatty())
    else:
        raise ValueError(f"Unknown log format: {log_format}")

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(level)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        if log_format == "json":
            file_handler.setFormatter(JSONFormatter(static_fields=static_fields))
        else:
            file_handler.setFormatter(TextFormatter(use_colors=False))
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextLogger:
    """Get a ContextLogger with optional bound context."""
    return ContextLogger(name, context)
