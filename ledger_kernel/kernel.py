"""
LedgerKernel -- composition root.

Responsibility:
    Wires one LedgerDatabase, one LedgerPolicy, one Clock and the
    collaborators into AccountRegistry, LedgerEngine and BillingLedger, and
    exposes their operations behind a single object.

Architecture position:
    Kernel > top.  The only kernel module allowed to import ledger_config;
    services receive the LedgerPolicy built from it.

Usage:
    kernel = LedgerKernel.from_settings(get_active_config(), invoices=gateway)
    kernel.create_tables()
    account = kernel.create_account("tenant-a", "1100", "Cash", "ASSET")
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from ledger_config import LedgerSettings, get_active_config
from ledger_config.bridges import build_database, build_policy
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountDetail,
    AccountInfo,
    AccountType,
    CreditNoteInfo,
    DashboardStats,
    DebitNoteInfo,
    InvoiceBalance,
    JournalEntryInfo,
    JournalLineInput,
    NoteItemInput,
    Page,
    PaymentInfo,
    PaymentMethodInfo,
    PaymentMethodType,
)
from ledger_kernel.domain.filters import (
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
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.selectors.dashboard_selector import DashboardSelector
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.billing_ledger import BillingLedger
from ledger_kernel.services.collaborators import (
    CustomerCatalog,
    InMemoryInvoiceGateway,
    InvoiceGateway,
    ProductCatalog,
)
from ledger_kernel.services.ledger_engine import LedgerEngine


class LedgerKernel:
    """
    One object per process (or per test).

    Contract:
        Safe to share between threads; each call opens its own transaction.
        ``invoices`` defaults to an empty InMemoryInvoiceGateway.
    """

    def __init__(
        self,
        database: LedgerDatabase,
        invoices: InvoiceGateway | None = None,
        customers: CustomerCatalog | None = None,
        products: ProductCatalog | None = None,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.database = database
        self.policy = policy or LedgerPolicy()
        self.clock = clock or SystemClock()
        self.invoices = invoices if invoices is not None else InMemoryInvoiceGateway()

        self.accounts = AccountRegistry(database, self.policy, self.clock)
        self.ledger = LedgerEngine(database, self.policy, self.clock)
        self.billing = BillingLedger(
            database,
            self.invoices,
            customers=customers,
            products=products,
            policy=self.policy,
            clock=self.clock,
        )

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings | None = None,
        invoices: InvoiceGateway | None = None,
        customers: CustomerCatalog | None = None,
        products: ProductCatalog | None = None,
        clock: Clock | None = None,
    ) -> "LedgerKernel":
        """Build the kernel from settings (``get_active_config()`` if omitted)."""
        settings = settings or get_active_config()
        configure_logging(level=settings.logging.level)
        return cls(
            build_database(settings),
            invoices=invoices,
            customers=customers,
            products=products,
            policy=build_policy(settings),
            clock=clock,
        )

    # -- Lifecycle ----------------------------------------------------------

    def create_tables(self) -> None:
        self.database.create_tables()

    def dispose(self) -> None:
        self.database.dispose()

    # -- Accounts -----------------------------------------------------------

    def create_account(
        self,
        tenant_id: str,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: UUID | str | None = None,
        description: str | None = None,
        is_active: bool = True,
        actor_id: UUID | str | None = None,
    ) -> AccountInfo:
        return self.accounts.create_account(
            tenant_id,
            code,
            name,
            account_type,
            parent_id=parent_id,
            description=description,
            is_active=is_active,
            actor_id=actor_id,
        )

    def update_account(
        self,
        tenant_id: str,
        account_id: UUID | str,
        patch: AccountPatch,
        actor_id: UUID | str | None = None,
    ) -> AccountInfo:
        return self.accounts.update_account(tenant_id, account_id, patch, actor_id=actor_id)

    def delete_account(
        self,
        tenant_id: str,
        account_id: UUID | str,
        actor_id: UUID | str | None = None,
    ) -> None:
        self.accounts.delete_account(tenant_id, account_id, actor_id=actor_id)

    def get_account_by_id(self, tenant_id: str, account_id: UUID | str) -> AccountDetail:
        return self.accounts.get_account_by_id(tenant_id, account_id)

    def list_accounts(
        self,
        tenant_id: str,
        filters: AccountFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[AccountInfo]:
        return self.accounts.list_accounts(tenant_id, filters, page, limit)

    # -- Journal ------------------------------------------------------------

    def create_journal_entry(
        self,
        tenant_id: str,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> JournalEntryInfo:
        return self.ledger.create_journal_entry(
            tenant_id,
            entry_date,
            description,
            lines,
            reference=reference,
            actor_id=actor_id,
        )

    def post_journal_entry(
        self,
        tenant_id: str,
        entry_id: UUID | str,
        actor_id: UUID | str | None = None,
    ) -> JournalEntryInfo:
        return self.ledger.post_journal_entry(tenant_id, entry_id, actor_id=actor_id)

    def get_journal_entry_by_id(
        self, tenant_id: str, entry_id: UUID | str
    ) -> JournalEntryInfo:
        return self.ledger.get_journal_entry_by_id(tenant_id, entry_id)

    def list_journal_entries(
        self,
        tenant_id: str,
        filters: JournalEntryFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[JournalEntryInfo]:
        return self.ledger.list_journal_entries(tenant_id, filters, page, limit)

    # -- Payment methods ----------------------------------------------------

    def create_payment_method(
        self,
        tenant_id: str,
        name: str,
        method_type: PaymentMethodType | str,
        description: str | None = None,
        fees: Decimal | int | str = Decimal("0"),
        is_active: bool = True,
        actor_id: UUID | str | None = None,
    ) -> PaymentMethodInfo:
        return self.billing.create_payment_method(
            tenant_id,
            name,
            method_type,
            description=description,
            fees=fees,
            is_active=is_active,
            actor_id=actor_id,
        )

    def update_payment_method(
        self,
        tenant_id: str,
        method_id: UUID | str,
        patch: PaymentMethodPatch,
        actor_id: UUID | str | None = None,
    ) -> PaymentMethodInfo:
        return self.billing.update_payment_method(tenant_id, method_id, patch, actor_id=actor_id)

    def list_payment_methods(
        self,
        tenant_id: str,
        filters: PaymentMethodFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentMethodInfo]:
        return self.billing.list_payment_methods(tenant_id, filters, page, limit)

    # -- Payments -----------------------------------------------------------

    def create_payment(
        self,
        tenant_id: str,
        invoice_id: str,
        amount: Decimal | int | float | str,
        payment_method_id: UUID | str,
        payment_date: date,
        reference: str | None = None,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> PaymentInfo:
        return self.billing.create_payment(
            tenant_id,
            invoice_id,
            amount,
            payment_method_id,
            payment_date,
            reference=reference,
            notes=notes,
            actor_id=actor_id,
        )

    def get_invoice_balance(self, tenant_id: str, invoice_id: str) -> InvoiceBalance:
        return self.billing.get_invoice_balance(tenant_id, invoice_id)

    def list_payments(
        self,
        tenant_id: str,
        filters: PaymentFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentInfo]:
        return self.billing.list_payments(tenant_id, filters, page, limit)

    # -- Notes --------------------------------------------------------------

    def create_credit_note(
        self,
        tenant_id: str,
        invoice_id: str,
        items: Sequence[NoteItemInput],
        reason: str,
        note_date: date,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> CreditNoteInfo:
        return self.billing.create_credit_note(
            tenant_id, invoice_id, items, reason, note_date, notes=notes, actor_id=actor_id
        )

    def list_credit_notes(
        self,
        tenant_id: str,
        filters: CreditNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[CreditNoteInfo]:
        return self.billing.list_credit_notes(tenant_id, filters, page, limit)

    def create_debit_note(
        self,
        tenant_id: str,
        customer_id: str,
        items: Sequence[NoteItemInput],
        reason: str,
        note_date: date,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> DebitNoteInfo:
        return self.billing.create_debit_note(
            tenant_id, customer_id, items, reason, note_date, notes=notes, actor_id=actor_id
        )

    def list_debit_notes(
        self,
        tenant_id: str,
        filters: DebitNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[DebitNoteInfo]:
        return self.billing.list_debit_notes(tenant_id, filters, page, limit)

    # -- Dashboard ----------------------------------------------------------

    def get_dashboard_stats(self, tenant_id: str) -> DashboardStats:
        """Record counts for the tenant."""
        with self.database.transaction("get_dashboard_stats") as session:
            return DashboardSelector(session, self.policy).get_stats(tenant_id)
