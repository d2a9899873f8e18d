"""Pure domain values: enums, DTOs, filters, money helpers, clock, policy."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountDetail,
    AccountInfo,
    AccountLineUsage,
    AccountSummary,
    AccountType,
    CreditNoteInfo,
    DashboardStats,
    DebitNoteInfo,
    EntryStatus,
    InvoiceBalance,
    InvoiceSummary,
    JournalEntryInfo,
    JournalLineInfo,
    JournalLineInput,
    NormalBalance,
    NoteCounts,
    NoteItemInfo,
    NoteItemInput,
    NoteStatus,
    Page,
    PaymentInfo,
    PaymentMethodInfo,
    PaymentMethodSummary,
    PaymentMethodType,
)
from ledger_kernel.domain.filters import (
    UNSET,
    AccountFilters,
    AccountPatch,
    CreditNoteFilters,
    DebitNoteFilters,
    JournalEntryFilters,
    PaymentFilters,
    PaymentMethodFilters,
    PaymentMethodPatch,
)
from ledger_kernel.domain.policy import LedgerPolicy

__all__ = [
    "AccountDetail",
    "AccountFilters",
    "AccountInfo",
    "AccountLineUsage",
    "AccountPatch",
    "AccountSummary",
    "AccountType",
    "Clock",
    "CreditNoteFilters",
    "CreditNoteInfo",
    "DashboardStats",
    "DebitNoteFilters",
    "DebitNoteInfo",
    "DeterministicClock",
    "EntryStatus",
    "InvoiceBalance",
    "InvoiceSummary",
    "JournalEntryFilters",
    "JournalEntryInfo",
    "JournalLineInfo",
    "JournalLineInput",
    "LedgerPolicy",
    "NormalBalance",
    "NoteCounts",
    "NoteItemInfo",
    "NoteItemInput",
    "NoteStatus",
    "Page",
    "PaymentFilters",
    "PaymentInfo",
    "PaymentMethodFilters",
    "PaymentMethodInfo",
    "PaymentMethodPatch",
    "PaymentMethodSummary",
    "PaymentMethodType",
    "SystemClock",
    "UNSET",
]
