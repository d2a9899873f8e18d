"""
Structured JSON logging for the ledger kernel.

Each record is written as one JSON object.  Besides the standard fields
(ts, level, logger, message) a record carries:

- the operation context bound by the service handling the call:
  ``tenant_id``, ``actor_id``, ``operation``, and, once a document
  exists, ``entry_id`` / ``document_number``;
- any ``extra`` fields passed to the logging call;
- for a LedgerKernelError logged with ``exc_info``, its ``error_code``,
  ``error_kind`` and payload attributes under ``error_detail``.

Only the ``ledger_kernel`` logger tree is configured here; it does not
propagate to the root logger.
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping
from uuid import UUID

from ledger_kernel.exceptions import LedgerKernelError

_ROOT_LOGGER = "ledger_kernel"

CONTEXT_FIELDS = ("tenant_id", "actor_id", "operation", "entry_id", "document_number")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("ledger_log_context", default=_EMPTY)


class LogContext:
    """
    Per-call log fields, held in a ContextVar so that concurrent calls on
    different threads never see each other's tenant or document.
    """

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Add fields for the duration of the block; None values are skipped.

        Raises:
            TypeError: for a name outside CONTEXT_FIELDS.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update((name, str(value)) for name, value in fields.items() if value is not None)
        token = _context.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _context.reset(token)


_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, LedgerKernelError):
        fields["error_code"] = exc.code
        fields["error_kind"] = exc.kind
        detail = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
        if detail:
            fields["error_detail"] = detail
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON line per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            for key, value in _error_fields(record.exc_info[1]).items():
                payload.setdefault(key, value)
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ledger_kernel namespace, e.g. ``services.billing``."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ledger_kernel logger.

    A no-op when a StructuredFormatter handler is already attached, so the
    composition root may call it once per kernel.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)


def reset_logging() -> None:
    """Detach every handler from the ledger_kernel logger (tests only)."""
    root = logging.getLogger(_ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)
