"""
Module: ledger_kernel.services.collaborators
Responsibility: The narrow interfaces the kernel needs from systems it does
    not own (invoicing, customer catalog, product catalog), plus in-memory
    implementations for local use and tests.
Architecture position: Kernel > Services.  BillingLedger depends on these
    Protocols only; the composition root decides which implementation runs.

Contract:
    Lookups are always tenant-scoped: an id that exists in another tenant
    must be reported as absent.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from ledger_kernel.domain.money import AmountLike, to_amount


@dataclass(frozen=True)
class InvoiceSnapshot:
    """What the kernel needs to know about an invoice."""

    id: str
    total: Decimal
    status: str | None = None
    invoice_number: str | None = None


@runtime_checkable
class InvoiceGateway(Protocol):
    def get_invoice(self, invoice_id: str, tenant_id: str) -> InvoiceSnapshot | None:
        ...


@runtime_checkable
class CustomerCatalog(Protocol):
    def customer_exists(self, customer_id: str, tenant_id: str) -> bool:
        ...


@runtime_checkable
class ProductCatalog(Protocol):
    def product_exists(self, product_id: str, tenant_id: str) -> bool:
        ...


class InMemoryInvoiceGateway:
    """Dict-backed InvoiceGateway keyed by (tenant_id, invoice_id)."""

    def __init__(self):
        self._invoices: dict[tuple[str, str], InvoiceSnapshot] = {}
        self._lock = threading.Lock()

    def add_invoice(
        self,
        tenant_id: str,
        invoice_id: str,
        total: AmountLike,
        status: str | None = "SENT",
        invoice_number: str | None = None,
    ) -> InvoiceSnapshot:
        snapshot = InvoiceSnapshot(
            id=invoice_id,
            total=to_amount(total, "total"),
            status=status,
            invoice_number=invoice_number,
        )
        with self._lock:
            self._invoices[(tenant_id, invoice_id)] = snapshot
        return snapshot

    def get_invoice(self, invoice_id: str, tenant_id: str) -> InvoiceSnapshot | None:
        with self._lock:
            return self._invoices.get((tenant_id, invoice_id))


class InMemoryCatalog:
    """Set-backed CustomerCatalog and ProductCatalog."""

    def __init__(self):
        self._customers: set[tuple[str, str]] = set()
        self._products: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def add_customer(self, tenant_id: str, customer_id: str) -> None:
        with self._lock:
            self._customers.add((tenant_id, customer_id))

    def add_product(self, tenant_id: str, product_id: str) -> None:
        with self._lock:
            self._products.add((tenant_id, product_id))

    def customer_exists(self, customer_id: str, tenant_id: str) -> bool:
        with self._lock:
            return (tenant_id, customer_id) in self._customers

    def product_exists(self, product_id: str, tenant_id: str) -> bool:
        with self._lock:
            return (tenant_id, product_id) in self._products
