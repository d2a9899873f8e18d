"""
Ledger Kernel

The ledger and billing reconciliation core of a multi-tenant business suite:
- Per-tenant chart of accounts
- Balanced double-entry journal entries with one-way posting
- Invoice payments bounded by the invoice's remaining balance
- Credit and debit notes with gap-safe document numbering
"""

__version__ = "0.1.0"
