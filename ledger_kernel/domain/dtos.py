"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the enums shared by models and callers, the immutable inputs
    accepted by the write paths (JournalLineInput, NoteItemInput) and the
    immutable results every public operation returns.

Architecture position:
    Kernel > Domain -- pure values, zero I/O.
    Free of ORM dependencies.  Selectors and services build these from rows;
    callers never see an ORM instance.

Invariants enforced:
    - Results are frozen dataclasses; collections inside them are tuples.
    - Monetary fields are Decimal, never float.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, TypeVar
from uuid import UUID

from ledger_kernel.domain.money import AmountLike

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class EntryStatus(str, Enum):
    """
    Status of a journal entry.

    Contract:
        Lifecycle: DRAFT -> POSTED.  Once POSTED, the entry is immutable;
        there is no reversal state.
    """

    DRAFT = "DRAFT"
    POSTED = "POSTED"


class PaymentMethodType(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    OTHER = "OTHER"


class NoteStatus(str, Enum):
    """Lifecycle of a credit or debit note.  Notes are created as DRAFT."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JournalLineInput:
    """
    One requested journal line.

    Exactly one of debit/credit must be positive; the other stays zero.
    Amounts are parsed and checked by LedgerEngine, not here.
    """

    account_id: UUID | str
    debit: AmountLike = Decimal("0")
    credit: AmountLike = Decimal("0")
    description: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class NoteItemInput:
    """One requested credit/debit note item."""

    product_id: str
    quantity: int
    unit_price: AmountLike
    reason: str | None = None


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the totals needed to page through the rest."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int
    pages: int


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountSummary:
    id: UUID
    code: str
    name: str


@dataclass(frozen=True)
class AccountInfo:
    """Account with its place in the tree and its usage count."""

    id: UUID
    tenant_id: str
    code: str
    name: str
    description: str | None
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: UUID | None
    is_active: bool
    parent: AccountSummary | None
    children: tuple[AccountSummary, ...]
    journal_line_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AccountLineUsage:
    """A journal line that touches an account, with its entry header."""

    line_id: UUID
    entry_id: UUID
    entry_number: str
    entry_date: date
    entry_description: str
    is_posted: bool
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class AccountDetail:
    account: AccountInfo
    recent_lines: tuple[AccountLineUsage, ...]


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JournalLineInfo:
    id: UUID
    line_seq: int
    account: AccountSummary
    debit: Decimal
    credit: Decimal
    description: str | None
    reference: str | None


@dataclass(frozen=True)
class JournalEntryInfo:
    """Journal entry header with its lines in line_seq order."""

    id: UUID
    tenant_id: str
    entry_number: str
    entry_date: date
    description: str
    reference: str | None
    total_debit: Decimal
    total_credit: Decimal
    is_posted: bool
    posted_at: datetime | None
    lines: tuple[JournalLineInfo, ...]
    created_at: datetime | None = None
    created_by_id: UUID | None = None

    @property
    def status(self) -> EntryStatus:
        return EntryStatus.POSTED if self.is_posted else EntryStatus.DRAFT

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentMethodSummary:
    id: UUID
    name: str
    method_type: PaymentMethodType


@dataclass(frozen=True)
class PaymentMethodInfo:
    id: UUID
    tenant_id: str
    name: str
    method_type: PaymentMethodType
    description: str | None
    fees: Decimal
    is_active: bool
    payment_count: int
    created_at: datetime | None = None


@dataclass(frozen=True)
class InvoiceSummary:
    id: str
    invoice_number: str | None
    total: Decimal
    status: str | None


@dataclass(frozen=True)
class InvoiceBalance:
    """Invoice total against the payments recorded for it."""

    invoice_id: str
    total: Decimal
    paid: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class PaymentInfo:
    """
    A recorded payment.

    ``remaining_balance`` is filled in when the payment is created; list
    results leave it as None.
    """

    id: UUID
    tenant_id: str
    invoice_id: str
    amount: Decimal
    payment_date: date
    reference: str | None
    notes: str | None
    user_id: UUID | None
    invoice_payment_seq: int
    payment_method: PaymentMethodSummary
    invoice: InvoiceSummary | None = None
    remaining_balance: Decimal | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class NoteItemInfo:
    id: UUID
    product_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    reason: str | None


@dataclass(frozen=True)
class CreditNoteInfo:
    id: UUID
    tenant_id: str
    credit_note_number: str
    invoice_id: str
    reason: str
    note_date: date
    notes: str | None
    subtotal: Decimal
    total: Decimal
    status: NoteStatus
    items: tuple[NoteItemInfo, ...]
    created_at: datetime | None = None
    created_by_id: UUID | None = None


@dataclass(frozen=True)
class DebitNoteInfo:
    id: UUID
    tenant_id: str
    debit_note_number: str
    customer_id: str
    reason: str
    note_date: date
    notes: str | None
    subtotal: Decimal
    total: Decimal
    status: NoteStatus
    items: tuple[NoteItemInfo, ...]
    created_at: datetime | None = None
    created_by_id: UUID | None = None


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoteCounts:
    total: int = 0
    draft: int = 0
    approved: int = 0
    cancelled: int = 0


@dataclass(frozen=True)
class DashboardStats:
    """Per-tenant record counts."""

    total_accounts: int
    active_accounts: int
    total_journal_entries: int
    posted_journal_entries: int
    total_payment_methods: int
    active_payment_methods: int
    total_payments: int
    credit_notes: NoteCounts = field(default_factory=NoteCounts)
    debit_notes: NoteCounts = field(default_factory=NoteCounts)
