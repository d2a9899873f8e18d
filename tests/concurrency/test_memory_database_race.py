"""
Concurrent writers on an in-memory SQLite handle.

Every thread shares the single connection behind ``sqlite://``, so the
handle runs their transactions one after another.  Numbers must still be
unique and gap-free, and no operation may fail because another thread's
transaction was open on the same connection.

Run with: pytest tests/concurrency/test_memory_database_race.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import JournalLineInput
from ledger_kernel.exceptions import PaymentExceedsBalanceError
from ledger_kernel.kernel import LedgerKernel
from ledger_kernel.services.collaborators import InMemoryInvoiceGateway
from tests.conftest import TENANT_A, TODAY

pytestmark = pytest.mark.slow_locks

NUM_THREADS = 8


@pytest.fixture
def memory_kernel():
    database = LedgerDatabase.from_url("sqlite://")
    database.create_tables()
    invoices = InMemoryInvoiceGateway()
    invoices.add_invoice(TENANT_A, "INV-1", Decimal("1160.00"))
    yield LedgerKernel(database, invoices=invoices, clock=DeterministicClock())
    database.dispose()


class TestInMemoryDatabaseConcurrency:

    def test_entries_get_unique_gap_free_numbers(self, memory_kernel):
        cash = memory_kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        sales = memory_kernel.create_account(TENANT_A, "4000", "Sales", "REVENUE")
        lines = [
            JournalLineInput(account_id=cash.id, debit="1.00"),
            JournalLineInput(account_id=sales.id, credit="1.00"),
        ]
        barrier = Barrier(NUM_THREADS, timeout=30)

        def create(i):
            barrier.wait()
            return memory_kernel.create_journal_entry(TENANT_A, TODAY, f"Sale {i}", lines)

        with ThreadPoolExecutor(max_workers=NUM_THREADS) as executor:
            entries = list(executor.map(create, range(NUM_THREADS)))

        numbers = sorted(e.entry_number for e in entries)
        assert numbers == [f"JE-{n:06d}" for n in range(1, NUM_THREADS + 1)]
        assert memory_kernel.list_journal_entries(TENANT_A).total == NUM_THREADS

    def test_payment_ceiling_holds(self, memory_kernel):
        method = memory_kernel.create_payment_method(TENANT_A, "Cash", "CASH")
        barrier = Barrier(NUM_THREADS, timeout=30)

        def pay(_):
            barrier.wait()
            try:
                return memory_kernel.create_payment(
                    TENANT_A, "INV-1", "200.00", method.id, TODAY
                )
            except PaymentExceedsBalanceError:
                return None

        with ThreadPoolExecutor(max_workers=NUM_THREADS) as executor:
            results = list(executor.map(pay, range(NUM_THREADS)))

        accepted = [r for r in results if r is not None]
        assert len(accepted) == 5
        balance = memory_kernel.get_invoice_balance(TENANT_A, "INV-1")
        assert balance.paid == Decimal("1000.00")
        assert balance.remaining == Decimal("160.00")
