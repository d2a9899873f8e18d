"""
Kernel services: the imperative shell that owns transaction boundaries.

    AccountRegistry   chart of accounts
    LedgerEngine      journal entries
    BillingLedger     payment methods, payments, credit/debit notes
    NumberingService  per-tenant document counters (session-bound helper)
"""

from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.billing_ledger import BillingLedger
from ledger_kernel.services.collaborators import (
    CustomerCatalog,
    InMemoryCatalog,
    InMemoryInvoiceGateway,
    InvoiceGateway,
    InvoiceSnapshot,
    ProductCatalog,
)
from ledger_kernel.services.ledger_engine import LedgerEngine
from ledger_kernel.services.numbering_service import (
    DocumentType,
    NumberingService,
    payment_sequence_name,
)

__all__ = [
    "AccountRegistry",
    "BillingLedger",
    "CustomerCatalog",
    "DocumentType",
    "InMemoryCatalog",
    "InMemoryInvoiceGateway",
    "InvoiceGateway",
    "InvoiceSnapshot",
    "LedgerEngine",
    "NumberingService",
    "ProductCatalog",
    "payment_sequence_name",
]
