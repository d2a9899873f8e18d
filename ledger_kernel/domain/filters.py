"""
Module: ledger_kernel.domain.filters
Responsibility: Closed query filters for the list operations and partial
    update patches for the update operations.
Architecture position: Kernel > Domain.  Pure values.

Filters are frozen dataclasses with every field optional; a None field does
not constrain the query.  Patches use the UNSET sentinel instead, because
None is a meaningful value for some fields (clearing a parent or a
description).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.domain.dtos import AccountType, NoteStatus, PaymentMethodType


class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class AccountFilters:
    search: str | None = None
    account_type: AccountType | None = None
    is_active: bool | None = None
    parent_id: UUID | str | None = None


@dataclass(frozen=True)
class JournalEntryFilters:
    search: str | None = None
    is_posted: bool | None = None
    start_date: date | None = None
    end_date: date | None = None
    # Entries with at least one line on this account
    account_id: UUID | str | None = None


@dataclass(frozen=True)
class PaymentFilters:
    search: str | None = None
    invoice_id: str | None = None
    payment_method_id: UUID | str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class PaymentMethodFilters:
    search: str | None = None
    method_type: PaymentMethodType | None = None
    is_active: bool | None = None


@dataclass(frozen=True)
class CreditNoteFilters:
    search: str | None = None
    status: NoteStatus | None = None
    invoice_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True)
class DebitNoteFilters:
    search: str | None = None
    status: NoteStatus | None = None
    customer_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class _Patch:
    """Mixin: collect the fields a caller actually set."""

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)  # type: ignore[arg-type]
            if getattr(self, f.name) is not UNSET
        }


@dataclass(frozen=True)
class AccountPatch(_Patch):
    code: str = UNSET
    name: str = UNSET
    description: str | None = UNSET
    account_type: AccountType = UNSET
    parent_id: UUID | str | None = UNSET
    is_active: bool = UNSET


@dataclass(frozen=True)
class PaymentMethodPatch(_Patch):
    name: str = UNSET
    method_type: PaymentMethodType = UNSET
    description: str | None = UNSET
    fees: Decimal | int | str = UNSET
    is_active: bool = UNSET
