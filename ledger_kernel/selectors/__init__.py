"""Read-only selectors for the ledger kernel."""

from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.billing_selector import BillingSelector
from ledger_kernel.selectors.dashboard_selector import DashboardSelector
from ledger_kernel.selectors.journal_selector import JournalSelector

__all__ = [
    "AccountSelector",
    "BillingSelector",
    "DashboardSelector",
    "JournalSelector",
]
