"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only queries over the chart of accounts: single
    account views with their tree neighbours and recent usage, and the
    filtered, paged account list.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Tenant isolation: every query filters on tenant_id.
    - Line counts are derived from journal_entry_lines, never stored.
"""

from uuid import UUID

from sqlalchemy import false, func, select
from sqlalchemy.orm import selectinload

from ledger_kernel.db.base import coerce_uuid
from ledger_kernel.domain.dtos import (
    AccountDetail,
    AccountInfo,
    AccountLineUsage,
    AccountSummary,
    AccountType,
    NormalBalance,
    Page,
)
from ledger_kernel.domain.filters import AccountFilters
from ledger_kernel.domain.validation import coerce_enum
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector, newest_number_first, search_clause

RECENT_LINE_LIMIT = 10


def account_summary(account: Account) -> AccountSummary:
    return AccountSummary(id=account.id, code=account.code, name=account.name)


def account_to_info(account: Account, journal_line_count: int) -> AccountInfo:
    """Build the DTO; ``parent`` and ``children`` must already be loaded."""
    return AccountInfo(
        id=account.id,
        tenant_id=account.tenant_id,
        code=account.code,
        name=account.name,
        description=account.description,
        account_type=AccountType(account.account_type),
        normal_balance=NormalBalance(account.normal_balance),
        parent_id=account.parent_id,
        is_active=account.is_active,
        parent=account_summary(account.parent) if account.parent is not None else None,
        children=tuple(account_summary(child) for child in account.children),
        journal_line_count=journal_line_count,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


class AccountSelector(BaseSelector):
    """Read-only chart-of-accounts queries."""

    _TREE = (selectinload(Account.parent), selectinload(Account.children))

    def line_counts(self, tenant_id: str, account_ids: list[UUID]) -> dict[UUID, int]:
        """Number of journal lines per account; accounts without lines are omitted."""
        if not account_ids:
            return {}
        rows = self.session.execute(
            select(JournalEntryLine.account_id, func.count(JournalEntryLine.id))
            .where(
                JournalEntryLine.tenant_id == tenant_id,
                JournalEntryLine.account_id.in_(account_ids),
            )
            .group_by(JournalEntryLine.account_id)
        ).all()
        return {account_id: count for account_id, count in rows}

    def get_info(self, tenant_id: str, account_id: UUID | str) -> AccountInfo | None:
        account_uuid = coerce_uuid(account_id)
        if account_uuid is None:
            return None
        account = self.session.execute(
            select(Account)
            .where(Account.tenant_id == tenant_id, Account.id == account_uuid)
            .options(*self._TREE)
        ).scalar_one_or_none()
        if account is None:
            return None
        counts = self.line_counts(tenant_id, [account.id])
        return account_to_info(account, counts.get(account.id, 0))

    def recent_lines(
        self,
        tenant_id: str,
        account_id: UUID,
        limit: int = RECENT_LINE_LIMIT,
    ) -> list[AccountLineUsage]:
        """Most recent journal lines on the account, newest entry first."""
        rows = self.session.execute(
            select(JournalEntryLine, JournalEntry)
            .join(JournalEntry, JournalEntryLine.entry_id == JournalEntry.id)
            .where(
                JournalEntryLine.tenant_id == tenant_id,
                JournalEntryLine.account_id == account_id,
            )
            .order_by(
                JournalEntry.created_at.desc(),
                *newest_number_first(JournalEntry.entry_number),
                JournalEntryLine.line_seq,
            )
            .limit(limit)
        ).all()
        return [
            AccountLineUsage(
                line_id=line.id,
                entry_id=entry.id,
                entry_number=entry.entry_number,
                entry_date=entry.entry_date,
                entry_description=entry.description,
                is_posted=entry.is_posted,
                debit=line.debit,
                credit=line.credit,
            )
            for line, entry in rows
        ]

    def get_detail(self, tenant_id: str, account_id: UUID | str) -> AccountDetail | None:
        info = self.get_info(tenant_id, account_id)
        if info is None:
            return None
        return AccountDetail(
            account=info,
            recent_lines=tuple(self.recent_lines(tenant_id, info.id)),
        )

    def list_accounts(
        self,
        tenant_id: str,
        filters: AccountFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[AccountInfo]:
        """Filtered accounts ordered by code ascending."""
        filters = filters or AccountFilters()
        stmt = select(Account).where(Account.tenant_id == tenant_id)

        clause = search_clause(
            filters.search, Account.code, Account.name, Account.description
        )
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.account_type is not None:
            account_type = coerce_enum(AccountType, filters.account_type, "account_type")
            stmt = stmt.where(Account.account_type == account_type.value)
        if filters.is_active is not None:
            stmt = stmt.where(Account.is_active == filters.is_active)
        if filters.parent_id is not None:
            parent_uuid = coerce_uuid(filters.parent_id)
            stmt = stmt.where(
                Account.parent_id == parent_uuid if parent_uuid else false()
            )

        stmt = stmt.order_by(Account.code.asc(), Account.id.asc())

        def to_dto(accounts: list[Account]) -> list[AccountInfo]:
            counts = self.line_counts(tenant_id, [a.id for a in accounts])
            return [account_to_info(a, counts.get(a.id, 0)) for a in accounts]

        return self.paginate(stmt, page, limit, to_dto, options=self._TREE)
