"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only queries over journal entries and their lines.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Tenant isolation on every query.
    - Lines are always returned in line_seq order.
    - Listing order is created_at DESC with the entry number DESC as the
      tiebreaker (longer numbers first), so paging never repeats or skips
      an entry.
"""

from uuid import UUID

from sqlalchemy import false, select
from sqlalchemy.orm import selectinload

from ledger_kernel.db.base import coerce_uuid
from ledger_kernel.domain.dtos import JournalEntryInfo, JournalLineInfo, Page
from ledger_kernel.domain.filters import JournalEntryFilters
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.account_selector import account_summary
from ledger_kernel.selectors.base import BaseSelector, newest_number_first, search_clause


def entry_to_info(entry: JournalEntry) -> JournalEntryInfo:
    """Build the DTO; lines and their accounts must already be loaded."""
    return JournalEntryInfo(
        id=entry.id,
        tenant_id=entry.tenant_id,
        entry_number=entry.entry_number,
        entry_date=entry.entry_date,
        description=entry.description,
        reference=entry.reference,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        is_posted=entry.is_posted,
        posted_at=entry.posted_at,
        lines=tuple(
            JournalLineInfo(
                id=line.id,
                line_seq=line.line_seq,
                account=account_summary(line.account),
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                reference=line.reference,
            )
            for line in sorted(entry.lines, key=lambda l: l.line_seq)
        ),
        created_at=entry.created_at,
        created_by_id=entry.created_by_id,
    )


class JournalSelector(BaseSelector):
    """Read-only journal queries."""

    _WITH_LINES = (
        selectinload(JournalEntry.lines).selectinload(JournalEntryLine.account),
    )

    def get_entry(self, tenant_id: str, entry_id: UUID | str) -> JournalEntryInfo | None:
        entry_uuid = coerce_uuid(entry_id)
        if entry_uuid is None:
            return None
        entry = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.tenant_id == tenant_id, JournalEntry.id == entry_uuid)
            .options(*self._WITH_LINES)
        ).scalar_one_or_none()
        return entry_to_info(entry) if entry is not None else None

    def list_entries(
        self,
        tenant_id: str,
        filters: JournalEntryFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[JournalEntryInfo]:
        filters = filters or JournalEntryFilters()
        stmt = select(JournalEntry).where(JournalEntry.tenant_id == tenant_id)

        clause = search_clause(
            filters.search,
            JournalEntry.entry_number,
            JournalEntry.description,
            JournalEntry.reference,
        )
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.is_posted is not None:
            stmt = stmt.where(JournalEntry.is_posted == filters.is_posted)
        if filters.start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= filters.end_date)
        if filters.account_id is not None:
            account_uuid = coerce_uuid(filters.account_id)
            if account_uuid is None:
                stmt = stmt.where(false())
            else:
                stmt = stmt.where(
                    JournalEntry.id.in_(
                        select(JournalEntryLine.entry_id).where(
                            JournalEntryLine.tenant_id == tenant_id,
                            JournalEntryLine.account_id == account_uuid,
                        )
                    )
                )

        stmt = stmt.order_by(
            JournalEntry.created_at.desc(),
            *newest_number_first(JournalEntry.entry_number),
        )
        return self.paginate(
            stmt,
            page,
            limit,
            lambda entries: [entry_to_info(e) for e in entries],
            options=self._WITH_LINES,
        )
