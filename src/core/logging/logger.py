"""
Ultimate Manager logging subsystem.

Every module logs through `get_logger(__name__)`. `setup_logging()` installs
one bounded queue in front of the real sinks so services never block on
console or file I/O while holding a store round trip open.

Sinks
-----
- Console: plain or colored lines in development, JSON in production
  (`LOG_JSON` overrides either way).
- File (`LOG_TO_FILE`): JSON lines, rotated at UTC midnight under `LOGS_DIR`.

Context
-------
`LogContext` binds `user_id`, `operation` and `correlation_id` to every
record emitted inside the block, across awaits, through a ContextVar. Fields
passed with `extra={...}` land in the JSON `extra` object.

Setup is explicit and idempotent: `ServiceContainer.initialize()` calls
`setup_logging()`; tests may call `shutdown_logging()` to flush and detach.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.core.config.config import Config

CONTEXT_FIELDS = ("user_id", "operation", "correlation_id")
_UNSET = "-"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("um_log_context", default={})

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class LoggerConfig:
    """Sink settings derived from `Config` at setup time."""

    LINE_FORMAT = "%(asctime)s %(levelname)-8s [%(user_id)s:%(operation)s] %(name)s: %(message)s"
    DATE_FORMAT = "%H:%M:%S"
    FILE_NAME = "ultimate_manager.jsonl"
    FILE_BACKUPS = 7
    QUEUE_SIZE = 10_000

    @staticmethod
    def level() -> int:
        value = logging.getLevelName(str(Config.LOG_LEVEL).upper())
        return value if isinstance(value, int) else logging.INFO

    @staticmethod
    def json_console() -> bool:
        return Config.is_production() if Config.LOG_JSON is None else bool(Config.LOG_JSON)

    @classmethod
    def colors(cls) -> bool:
        return not cls.json_console() and bool(Config.LOG_COLORS) and sys.stdout.isatty()

    @staticmethod
    def log_file() -> Optional[Path]:
        if not Config.LOG_TO_FILE:
            return None
        return Path(Config.LOGS_DIR).resolve() / LoggerConfig.FILE_NAME


@dataclass(frozen=True)
class LoggingHealth:
    initialized: bool
    queued: int
    capacity: int
    enqueued: int
    dropped: int


class _Counters:
    enqueued = 0
    dropped = 0

    @classmethod
    def reset(cls) -> None:
        cls.enqueued = cls.dropped = 0


_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_listener: Optional[QueueListener] = None
_queue_handler: Optional[QueueHandler] = None


class ContextFilter(logging.Filter):
    """Stamp the caller's LogContext onto the record before it is queued."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get()
        for field in CONTEXT_FIELDS:
            # Explicit `extra={"operation": ...}` wins over the ambient context
            if not hasattr(record, field):
                setattr(record, field, context.get(field, _UNSET))
        return True


class ColoredFormatter(logging.Formatter):
    PALETTE = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        color = self.PALETTE.get(record.levelno)
        return f"{color}{line}\033[0m" if color else line


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "app": Config.APP_NAME,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "at": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, _UNSET)
            if value != _UNSET:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, ensure_ascii=False, default=str)


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _Counters.dropped += 1
            return
        _Counters.enqueued += 1


def _sinks() -> List[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    if LoggerConfig.json_console():
        console.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if LoggerConfig.colors() else logging.Formatter
        console.setFormatter(
            formatter_cls(fmt=LoggerConfig.LINE_FORMAT, datefmt=LoggerConfig.DATE_FORMAT)
        )
    sinks: List[logging.Handler] = [console]

    path = LoggerConfig.log_file()
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = TimedRotatingFileHandler(
            filename=str(path),
            when="midnight",
            backupCount=LoggerConfig.FILE_BACKUPS,
            encoding="utf-8",
            utc=True,
        )
        rotating.setFormatter(JSONFormatter())
        sinks.append(rotating)
    return sinks


def setup_logging() -> None:
    """Install the queue-backed root handler. Safe to call repeatedly."""
    global _queue, _listener, _queue_handler

    if _queue_handler is not None:
        return

    level = LoggerConfig.level()
    _Counters.reset()
    _queue = queue.Queue(LoggerConfig.QUEUE_SIZE)
    _listener = QueueListener(_queue, *_sinks(), respect_handler_level=True)
    _listener.start()

    _queue_handler = _DroppingQueueHandler(_queue)
    _queue_handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(_queue_handler)
    for noisy in ("asyncio", "redis", "testcontainers"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready",
        extra={
            "environment": Config.ENVIRONMENT,
            "level": logging.getLevelName(level),
            "json_console": LoggerConfig.json_console(),
            "file": str(LoggerConfig.log_file() or ""),
        },
    )


def shutdown_logging() -> None:
    """Flush queued records to the sinks and detach the root handler."""
    global _queue, _listener, _queue_handler

    if _queue_handler is None:
        return

    logging.getLogger().removeHandler(_queue_handler)
    _queue_handler.close()
    _queue_handler = None

    if _listener is not None:
        _listener.stop()
        for sink in _listener.handlers:
            sink.flush()
            sink.close()
        _listener = None
    _queue = None


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=_queue_handler is not None,
        queued=_queue.qsize() if _queue is not None else 0,
        capacity=_queue.maxsize if _queue is not None else 0,
        enqueued=_Counters.enqueued,
        dropped=_Counters.dropped,
    )


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind user and operation to every log line emitted inside the block.

    Nested contexts inherit the outer correlation id unless given their own,
    so one pack opening can be followed through ledger, inventory and event
    listeners.

    >>> async with LogContext(user_id="u_123", operation="open_pack"):
    ...     await packs.open_pack("u_123")
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self._overrides: Dict[str, Any] = {
            key: value
            for key, value in (
                ("user_id", user_id),
                ("operation", operation),
                ("correlation_id", correlation_id),
            )
            if value is not None
        }
        self._overrides.update(extra)
        self._token: Optional[Token[Dict[str, Any]]] = None

    @property
    def correlation_id(self) -> Optional[str]:
        return _log_context.get().get("correlation_id") if self._token is not None else None

    def __enter__(self) -> "LogContext":
        merged = {**_log_context.get(), **self._overrides}
        merged.setdefault("correlation_id", uuid.uuid4().hex[:8])
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current task's context (None values are ignored)."""
    current = dict(_log_context.get())
    current.update({key: value for key, value in fields.items() if value is not None})
    _log_context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})
