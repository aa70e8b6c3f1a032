"""
Structured JSON logging for the trade kernel.

Every record under the ``trade_kernel`` logger hierarchy is emitted as one
JSON line.  Request-scoped fields (which order, which actor, which action)
live in a single context variable so a milestone action can be traced from
the HTTP request down to the storage error that ended it.

Keys that look like key material are masked before serialization; the
packing-list signing secret must never reach a log sink.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "trade_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "order_id",
    "actor_id",
    "action",
    "trace_id",
)

_MASK = "***"
_SENSITIVE_MARKERS = ("secret", "password", "signing_key")

_fields: ContextVar[Mapping[str, str]] = ContextVar("trade_log_fields", default={})


def _checked(fields: Mapping[str, str | None]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
    return {k: v for k, v in fields.items() if v is not None}


class LogContext:
    """
    Request-scoped log fields, safe across threads and asyncio tasks.

    A new thread starts with an empty context.  ``None`` never overwrites
    a field that is already set.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        _fields.set({**_fields.get(), **_checked(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_fields.get())

    @staticmethod
    def clear() -> None:
        _fields.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """Layer fields on top of the current context for one block."""
        token = _fields.set({**_fields.get(), **_checked(fields)})
        try:
            yield LogContext
        finally:
            _fields.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered.endswith(_SENSITIVE_MARKERS)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Kernel errors keep their identifying values as public attributes
    for key, value in vars(exc).items():
        if key.startswith("_") or key in ("args", "code", "http_status"):
            continue
        fields[f"exc_{key}"] = _MASK if _is_sensitive(key) else value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_fields.get(),
        }

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key in payload:
                continue
            payload[key] = _MASK if _is_sensitive(key) else value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the trade_kernel namespace, e.g. ``services.milestone_engine``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the trade_kernel hierarchy. Idempotent."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False
        kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Drop handlers and forget configuration. Tests only."""
    global _configured
    with _lock:
        _configured = False
        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.handlers.clear()
        kernel_logger.setLevel(logging.WARNING)
