"""
LedgerEngine -- balanced double-entry journal entries.

Responsibility:
    Validates and writes journal entries (header plus ordered lines), posts
    them exactly once, and answers journal queries.

Architecture position:
    Kernel > Services -- imperative shell, owns the transaction boundary of
    each call.  Delegates numbering to NumberingService and reads to
    JournalSelector.

Invariants enforced:
    - Every line has non-negative debit and credit, exactly one of them
      positive, and no precision finer than the currency unit.
    - total_debit == total_credit, compared as exact Decimals.
    - Every line account exists in the tenant and is active.
    - Entry numbers come from the tenant's JOURNAL_ENTRY counter row, never
      from counting existing entries.
    - Header and lines are written in one transaction.
    - Posting happens at most once: the entry row is locked FOR UPDATE and
      a second post is rejected without touching the row.

Failure modes:
    - EmptyEntryError, InvalidLineError, UnbalancedEntryError,
      InvalidAccountError, InvalidFieldError (validation).
    - JournalEntryNotFoundError.
    - EntryAlreadyPostedError (conflict).

Non-goals:
    - No reversal or void: corrections are recorded as new entries.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.base import coerce_uuid, column_length
from ledger_kernel.db.types import round_money
from ledger_kernel.domain.dtos import JournalEntryInfo, JournalLineInput, Page
from ledger_kernel.domain.filters import JournalEntryFilters
from ledger_kernel.domain.money import ZERO, has_unit_precision, sum_amounts, to_amount
from ledger_kernel.domain.validation import optional_text, require_date, require_text
from ledger_kernel.exceptions import (
    EmptyEntryError,
    EntryAlreadyPostedError,
    InvalidAccountError,
    InvalidAmountError,
    InvalidLineError,
    JournalEntryNotFoundError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.numbering_service import DocumentType, NumberingService

logger = get_logger("services.ledger")


@dataclass(frozen=True)
class _CheckedLine:
    """A request line after amount parsing and per-line validation."""

    account_id: UUID | None
    raw_account_id: str
    debit: Decimal
    credit: Decimal
    description: str | None
    reference: str | None


class LedgerEngine(BaseService):
    """
    Journal entry creation, posting and queries.

    Guarantees:
        - A stored entry is always balanced.
        - Each call is one transaction; a rejected entry leaves no header,
          no lines and no consumed entry number.
    """

    logger = logger

    # -- Validation ---------------------------------------------------------

    def _line_amount(self, index: int, value, side: str) -> Decimal:
        try:
            amount = to_amount(value, side)
        except InvalidAmountError as exc:
            raise InvalidLineError(index, f"{side} {exc.reason}") from None
        if amount < ZERO:
            raise InvalidLineError(index, f"{side} must not be negative")
        if not has_unit_precision(amount, self.policy.decimal_places):
            raise InvalidLineError(
                index,
                f"{side} has more than {self.policy.decimal_places} decimal places",
            )
        return round_money(amount, self.policy.decimal_places)

    def _check_lines(self, lines: Sequence[JournalLineInput]) -> list[_CheckedLine]:
        if not lines:
            raise EmptyEntryError()

        checked: list[_CheckedLine] = []
        for index, line in enumerate(lines):
            debit = self._line_amount(index, line.debit, "debit")
            credit = self._line_amount(index, line.credit, "credit")
            if (debit > ZERO) == (credit > ZERO):
                raise InvalidLineError(
                    index, "exactly one of debit or credit must be positive"
                )
            if line.account_id is None or str(line.account_id).strip() == "":
                raise InvalidLineError(index, "account_id is required")
            checked.append(
                _CheckedLine(
                    account_id=coerce_uuid(line.account_id),
                    raw_account_id=str(line.account_id),
                    debit=debit,
                    credit=credit,
                    description=optional_text(
                        line.description,
                        f"lines[{index}].description",
                        column_length(JournalEntryLine.description),
                    ),
                    reference=optional_text(
                        line.reference,
                        f"lines[{index}].reference",
                        column_length(JournalEntryLine.reference),
                    ),
                )
            )
        return checked

    @staticmethod
    def _check_accounts(
        session: Session, tenant_id: str, lines: list[_CheckedLine]
    ) -> None:
        """Every referenced account must exist in the tenant and be active."""
        requested = {line.raw_account_id: line.account_id for line in lines}
        wanted = {uuid for uuid in requested.values() if uuid is not None}
        found: dict[UUID, Account] = {}
        if wanted:
            found = {
                account.id: account
                for account in session.execute(
                    select(Account).where(
                        Account.tenant_id == tenant_id,
                        Account.id.in_(wanted),
                    )
                ).scalars()
            }

        missing = sorted(raw for raw, uuid in requested.items() if uuid not in found)
        if missing:
            raise InvalidAccountError(missing, "not found")

        inactive = sorted(
            raw for raw, uuid in requested.items() if not found[uuid].is_active
        )
        if inactive:
            raise InvalidAccountError(inactive, "inactive")

    # -- Commands -----------------------------------------------------------

    def create_journal_entry(
        self,
        tenant_id: str,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> JournalEntryInfo:
        """
        Validate and store a DRAFT journal entry.

        Preconditions:
            lines is non-empty; every line has exactly one positive side.

        Postconditions:
            Header and all lines exist; total_debit == total_credit; the
            entry carries the next JE number of the tenant.

        Raises:
            EmptyEntryError, InvalidLineError, UnbalancedEntryError,
            InvalidAccountError, InvalidFieldError.
        """
        lines = tuple(lines or ())
        with self.guarded(
            "journal_entry_rejected",
            tenant_id,
            actor_id,
            operation="create_journal_entry",
            line_count=len(lines),
        ):
            entry_date = require_date(entry_date, "entry_date")
            description = require_text(
                description, "description", column_length(JournalEntry.description)
            )
            reference = optional_text(
                reference, "reference", column_length(JournalEntry.reference)
            )
            checked = self._check_lines(lines)

            total_debit = sum_amounts(line.debit for line in checked)
            total_credit = sum_amounts(line.credit for line in checked)
            if total_debit != total_credit:
                raise UnbalancedEntryError(total_debit, total_credit)

            with self.database.transaction("create_journal_entry") as session:
                self._check_accounts(session, tenant_id, checked)

                entry_number = NumberingService(session, self.policy).next(
                    tenant_id, DocumentType.JOURNAL_ENTRY
                )
                actor_uuid = coerce_uuid(actor_id)
                entry = JournalEntry(
                    tenant_id=tenant_id,
                    entry_number=entry_number,
                    entry_date=entry_date,
                    description=description,
                    reference=reference,
                    total_debit=total_debit,
                    total_credit=total_credit,
                    is_posted=False,
                    created_by_id=actor_uuid,
                )
                for seq, line in enumerate(checked):
                    entry.lines.append(
                        JournalEntryLine(
                            tenant_id=tenant_id,
                            account_id=line.account_id,
                            debit=line.debit,
                            credit=line.credit,
                            description=line.description,
                            reference=line.reference,
                            line_seq=seq,
                            created_by_id=actor_uuid,
                        )
                    )
                session.add(entry)
                session.flush()

                info = JournalSelector(session, self.policy).get_entry(tenant_id, entry.id)

        with LogContext.bind(entry_id=info.id, document_number=info.entry_number):
            logger.info(
                "journal_entry_created",
                extra={
                    "tenant_id": tenant_id,
                    "line_count": len(info.lines),
                    "total_debit": info.total_debit,
                    "total_credit": info.total_credit,
                },
            )
        return info

    def post_journal_entry(
        self,
        tenant_id: str,
        entry_id: UUID | str,
        actor_id: UUID | str | None = None,
    ) -> JournalEntryInfo:
        """
        Mark a DRAFT entry as POSTED.

        Single use: the entry row is locked FOR UPDATE, so of two
        concurrent calls exactly one succeeds.

        Raises:
            JournalEntryNotFoundError, EntryAlreadyPostedError.
        """
        with self.guarded(
            "journal_entry_post_rejected",
            tenant_id,
            actor_id,
            operation="post_journal_entry",
            entry_id=str(entry_id),
        ):
            with self.database.transaction("post_journal_entry") as session:
                entry_uuid = coerce_uuid(entry_id)
                entry = None
                if entry_uuid is not None:
                    entry = session.execute(
                        select(JournalEntry)
                        .where(
                            JournalEntry.tenant_id == tenant_id,
                            JournalEntry.id == entry_uuid,
                        )
                        .with_for_update()
                        .execution_options(populate_existing=True)
                    ).scalar_one_or_none()
                if entry is None:
                    raise JournalEntryNotFoundError(str(entry_id))
                if entry.is_posted:
                    raise EntryAlreadyPostedError(str(entry.id), entry.entry_number)

                entry.is_posted = True
                entry.posted_at = self.clock.now()
                entry.updated_by_id = coerce_uuid(actor_id)
                session.flush()

                info = JournalSelector(session, self.policy).get_entry(tenant_id, entry.id)

        with LogContext.bind(entry_id=info.id, document_number=info.entry_number):
            logger.info(
                "journal_entry_posted",
                extra={"tenant_id": tenant_id, "posted_at": info.posted_at},
            )
        return info

    # -- Queries ------------------------------------------------------------

    def get_journal_entry_by_id(
        self, tenant_id: str, entry_id: UUID | str
    ) -> JournalEntryInfo:
        with self.database.transaction("get_journal_entry_by_id") as session:
            info = JournalSelector(session, self.policy).get_entry(tenant_id, entry_id)
        if info is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return info

    def list_journal_entries(
        self,
        tenant_id: str,
        filters: JournalEntryFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[JournalEntryInfo]:
        with self.database.transaction("list_journal_entries") as session:
            return JournalSelector(session, self.policy).list_entries(
                tenant_id, filters, page, limit
            )
