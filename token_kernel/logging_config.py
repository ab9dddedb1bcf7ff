"""
Structured JSON logging for the token kernel.

Every record is written as one JSON object:

    {"ts": ..., "level": ..., "logger": ..., "message": ...,
     <invocation fields>, <extra fields>, "error": {...}}

Invocation fields are bound by TokenLedger around each entry point:

    correlation_id   one id per entry-point call
    actor_id         the authenticated caller
    operation        entry-point name
    ledger_sequence  ledger sequence when the call started (int)

A bound invocation field always wins over an ``extra`` key of the same
name; services log the operation they refused as ``attempted_operation``.

When a record carries ``exc_info`` the exception is written under
``error``.  For a TokenKernelError that object also holds the error's
``code``, its category (the direct TokenKernelError subclass it belongs
to) and its structured attributes.

Token amounts are 128-bit integers.  Integers outside the range a JSON
double holds exactly are written as decimal strings.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO
from uuid import UUID, uuid4

from token_kernel.exceptions import TokenKernelError

_LOGGER_PREFIX = "token_kernel"

INVOCATION_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "operation",
    "ledger_sequence",
)

# Largest integer an IEEE-754 double represents exactly
_MAX_SAFE_INT = 2**53 - 1


# ---------------------------------------------------------------------------
# Invocation context
# ---------------------------------------------------------------------------

_fields: ContextVar[Mapping[str, str | int]] = ContextVar("token_log_fields", default={})


class LogContext:
    """Invocation-scoped log fields, safe across threads and tasks."""

    @staticmethod
    def _merge(values: dict[str, str | int | None]) -> dict[str, str | int]:
        unknown = set(values) - set(INVOCATION_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_fields.get())
        merged.update({k: v for k, v in values.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **values: str | int | None) -> None:
        """Set fields for the rest of the current context; None values are ignored."""
        _fields.set(cls._merge(values))

    @classmethod
    def get_all(cls) -> dict[str, str | int]:
        current = _fields.get()
        return {name: current[name] for name in INVOCATION_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **values: str | int | None) -> Iterator[None]:
        """Set fields on entry and restore the previous ones on exit."""
        token = _fields.set(cls._merge(values))
        try:
            yield
        finally:
            _fields.reset(token)

    @classmethod
    def invocation(cls, operation: str, actor_id: str, ledger_sequence: int):
        """Bind a fresh correlation id for one ledger entry-point call."""
        return cls.bind(
            correlation_id=uuid4().hex,
            actor_id=str(actor_id),
            operation=operation,
            ledger_sequence=ledger_sequence,
        )


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        return value if abs(value) <= _MAX_SAFE_INT else str(value)
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


def _error_category(exc: TokenKernelError) -> str:
    for cls in type(exc).__mro__:
        if TokenKernelError in cls.__bases__:
            return cls.__name__
    return TokenKernelError.__name__


def _error_payload(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, TokenKernelError):
        error["code"] = exc.code
        error["category"] = _error_category(exc)
        error["fields"] = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
    return error


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            error = _error_payload(record.exc_info[1])
            error["traceback"] = self.formatException(record.exc_info)
            payload["error"] = error

        return json.dumps(_jsonable(payload))


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the token_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install one structured handler on the token_kernel logger.

    Repeated calls keep the first handler and return it.
    """
    global _installed_handler
    if _installed_handler is not None:
        return _installed_handler

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    installed = handler or logging.StreamHandler(stream or sys.stderr)
    installed.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(installed)
    _installed_handler = installed
    return installed


def reset_logging() -> None:
    """Undo configure_logging(); handlers added by others are left alone."""
    global _installed_handler
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    if _installed_handler is not None:
        kernel_logger.removeHandler(_installed_handler)
        _installed_handler = None
    kernel_logger.setLevel(logging.NOTSET)
    kernel_logger.propagate = True
