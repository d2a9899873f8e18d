"""
Module: ledger_kernel.selectors.dashboard_selector
Responsibility: Per-tenant record counts for the billing/accounting
    dashboard.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import DashboardStats, NoteCounts, NoteStatus
from ledger_kernel.models.account import Account
from ledger_kernel.models.billing import Payment, PaymentMethod
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.models.notes import CreditNote, DebitNote
from ledger_kernel.selectors.base import BaseSelector


class DashboardSelector(BaseSelector):
    """Counts only; no amounts are aggregated here."""

    def _count(self, model, *criteria) -> int:
        return self.session.execute(
            select(func.count(model.id)).where(*criteria)
        ).scalar_one()

    def _note_counts(self, model, tenant_id: str) -> NoteCounts:
        rows = self.session.execute(
            select(model.status, func.count(model.id))
            .where(model.tenant_id == tenant_id)
            .group_by(model.status)
        ).all()
        by_status = {status: count for status, count in rows}
        return NoteCounts(
            total=sum(by_status.values()),
            draft=by_status.get(NoteStatus.DRAFT.value, 0),
            approved=by_status.get(NoteStatus.APPROVED.value, 0),
            cancelled=by_status.get(NoteStatus.CANCELLED.value, 0),
        )

    def get_stats(self, tenant_id: str) -> DashboardStats:
        return DashboardStats(
            total_accounts=self._count(Account, Account.tenant_id == tenant_id),
            active_accounts=self._count(
                Account, Account.tenant_id == tenant_id, Account.is_active.is_(True)
            ),
            total_journal_entries=self._count(
                JournalEntry, JournalEntry.tenant_id == tenant_id
            ),
            posted_journal_entries=self._count(
                JournalEntry,
                JournalEntry.tenant_id == tenant_id,
                JournalEntry.is_posted.is_(True),
            ),
            total_payment_methods=self._count(
                PaymentMethod, PaymentMethod.tenant_id == tenant_id
            ),
            active_payment_methods=self._count(
                PaymentMethod,
                PaymentMethod.tenant_id == tenant_id,
                PaymentMethod.is_active.is_(True),
            ),
            total_payments=self._count(Payment, Payment.tenant_id == tenant_id),
            credit_notes=self._note_counts(CreditNote, tenant_id),
            debit_notes=self._note_counts(DebitNote, tenant_id),
        )
