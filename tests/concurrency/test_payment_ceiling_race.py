"""
Concurrent payments against one invoice.

The remaining balance is checked after the invoice's payment counter row
is locked, so parallel payments are checked one at a time and the
invoice can never be overpaid.

Run with: pytest tests/concurrency/test_payment_ceiling_race.py -v
Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from ledger_kernel.exceptions import PaymentExceedsBalanceError
from tests.conftest import TENANT_A, TODAY

pytestmark = pytest.mark.slow_locks

NUM_THREADS = 10


class TestPaymentCeilingUnderConcurrency:

    def test_parallel_payments_never_exceed_total(self, kernel, cash_method):
        # INV-1 totals 1160.00: five payments of 200.00 fit, the sixth does not
        barrier = Barrier(NUM_THREADS, timeout=30)

        def pay(_):
            barrier.wait()
            try:
                return kernel.create_payment(
                    TENANT_A, "INV-1", Decimal("200.00"), cash_method.id, TODAY
                )
            except PaymentExceedsBalanceError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=NUM_THREADS) as executor:
            results = list(executor.map(pay, range(NUM_THREADS)))

        accepted = [r for r in results if not isinstance(r, PaymentExceedsBalanceError)]
        rejected = [r for r in results if isinstance(r, PaymentExceedsBalanceError)]

        assert len(accepted) == 5
        assert len(rejected) == 5
        assert all(r.remaining == Decimal("160.00") for r in rejected)
        assert sorted(p.invoice_payment_seq for p in accepted) == [1, 2, 3, 4, 5]

        balance = kernel.get_invoice_balance(TENANT_A, "INV-1")
        assert balance.paid == Decimal("1000.00")
        assert balance.remaining == Decimal("160.00")

    def test_parallel_exact_remaining_only_one_wins(self, kernel, cash_method):
        kernel.create_payment(TENANT_A, "INV-2", "150.00", cash_method.id, TODAY)
        barrier = Barrier(NUM_THREADS, timeout=30)

        def pay(_):
            barrier.wait()
            try:
                kernel.create_payment(TENANT_A, "INV-2", "100.00", cash_method.id, TODAY)
                return True
            except PaymentExceedsBalanceError:
                return False

        with ThreadPoolExecutor(max_workers=NUM_THREADS) as executor:
            outcomes = list(executor.map(pay, range(NUM_THREADS)))

        assert outcomes.count(True) == 1
        assert kernel.get_invoice_balance(TENANT_A, "INV-2").remaining == Decimal("0.00")
