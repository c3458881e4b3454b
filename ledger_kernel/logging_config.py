"""
Structured JSON logging for the case ledger.

Every record under the ``ledger_kernel`` logger is rendered as one JSON
object per line: an envelope (``ts``, ``level``, ``logger``, ``message``),
the fields bound in ``LogContext`` for the current case operation, the
record's ``extra`` fields and, for ledger exceptions, their structured
attributes.
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
from types import MappingProxyType
from typing import Any
from uuid import UUID

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_EMPTY: Mapping[str, str] = MappingProxyType({})
_bound_fields: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)


class LogContext:
    """
    Case-operation fields attached to every record logged in this context.

    Backed by a single ContextVar holding a read-only mapping, so threads
    and asyncio tasks each see their own fields.
    """

    FIELDS = frozenset({"correlation_id", "case_id", "actor_id", "operation"})

    @classmethod
    def _merged(cls, fields: dict[str, str | None]) -> Mapping[str, str]:
        unknown = set(fields) - cls.FIELDS
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_bound_fields.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return MappingProxyType(merged)

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of this context. None values are ignored."""
        _bound_fields.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_bound_fields.get())

    @classmethod
    def clear(cls) -> None:
        _bound_fields.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of the block, then restore."""
        token = _bound_fields.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _bound_fields.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle UUID, datetime, date, Decimal and enums in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            # Structured fields from CaseLedgerError subclasses
            for k, v in vars(exc).items():
                if not k.startswith("_") and k not in ("args", "code"):
                    payload[f"exc_{k}"] = v
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "ledger_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ledger_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``ledger_kernel`` logger.

    Later calls are no-ops until ``reset_logging()``; the first caller's
    level and destination win.  Records do not propagate to the root
    logger, so host applications see ledger output only through this
    handler.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        ledger_logger = logging.getLogger(_LOGGER_PREFIX)
        ledger_logger.setLevel(level)
        ledger_logger.propagate = False
        ledger_logger.addHandler(target)
        _installed_handler = target


def reset_logging() -> None:
    """Detach the ledger handler and restore stdlib defaults. Used by tests."""
    global _installed_handler
    with _setup_lock:
        ledger_logger = logging.getLogger(_LOGGER_PREFIX)
        ledger_logger.handlers.clear()
        ledger_logger.setLevel(logging.WARNING)
        ledger_logger.propagate = True
        _installed_handler = None
