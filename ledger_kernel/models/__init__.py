"""SQLAlchemy ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.billing import Payment, PaymentMethod
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.models.notes import (
    CreditNote,
    CreditNoteItem,
    DebitNote,
    DebitNoteItem,
)
from ledger_kernel.models.sequence import SequenceCounter

__all__ = [
    "Account",
    "CreditNote",
    "CreditNoteItem",
    "DebitNote",
    "DebitNoteItem",
    "JournalEntry",
    "JournalEntryLine",
    "Payment",
    "PaymentMethod",
    "SequenceCounter",
]
