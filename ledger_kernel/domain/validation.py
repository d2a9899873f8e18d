"""
Lightweight input validation helpers.

Pure checks with no I/O, used by services and selectors at the kernel
boundary.  Every failure is an InvalidFieldError.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, TypeVar

from ledger_kernel.exceptions import InvalidFieldError

E = TypeVar("E", bound=Enum)


def _check_length(text: str, field: str, max_length: int | None) -> str:
    if max_length is not None and len(text) > max_length:
        raise InvalidFieldError(field, f"must be at most {max_length} characters")
    return text


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    """Return the stripped string, or raise if it is missing, blank or too long."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidFieldError(field, "must be a non-empty string")
    return _check_length(value.strip(), field, max_length)


def optional_text(value: Any, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidFieldError(field, "must be a string")
    text = value.strip()
    if not text:
        return None
    return _check_length(text, field, max_length)


def coerce_enum(enum_cls: type[E], value: Any, field: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidFieldError(field, f"must be one of {allowed}") from None


def require_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidFieldError(field, "must be a boolean")
    return value


def require_date(value: Any, field: str) -> date:
    """Accept a date (a datetime is truncated to its date)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidFieldError(field, "must be a date")
