"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    double-entry record of every economic event in a tenant's books.
Architecture position: Kernel > Models.  May import from db/ and the domain
    enums only.

Invariants enforced:
    - entry_number is unique within a tenant (uq_journal_tenant_number).
    - total_debit == total_credit for every stored entry (checked by
      LedgerEngine before insert; never recomputed afterwards).
    - Each line has exactly one positive side (checked by LedgerEngine).
    - Once is_posted is True the entry is never modified again.

Failure modes:
    - IntegrityError on a duplicate entry_number, which cannot occur while
      numbers come from NumberingService.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScoped, UUIDString
from ledger_kernel.domain.dtos import EntryStatus
from ledger_kernel.models.account import Account


class JournalEntry(TenantScoped):
    """
    Journal entry header.

    Contract:
        Written together with all of its lines in one transaction.  Starts
        as DRAFT; ``post_journal_entry`` flips it to POSTED exactly once.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_journal_tenant_number"),
        Index("idx_journal_tenant_created", "tenant_id", "created_at"),
        Index("idx_journal_tenant_date", "tenant_id", "entry_date"),
    )

    # JE-000001
    entry_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Stored totals, computed once from the lines at creation
    total_debit: Mapped[Decimal] = mapped_column(nullable=False)
    total_credit: Mapped[Decimal] = mapped_column(nullable=False)

    is_posted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    # Relationships
    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_seq",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} ({self.status.value})>"

    @property
    def status(self) -> EntryStatus:
        return EntryStatus.POSTED if self.is_posted else EntryStatus.DRAFT


class JournalEntryLine(TenantScoped):
    """
    Single debit or credit line of a journal entry.

    Contract:
        Exactly one of debit/credit is positive, the other is zero.
        line_seq is the 0-based position the caller submitted the line in.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint("entry_id", "line_seq", name="uq_journal_line_seq"),
        Index("idx_journal_line_account", "tenant_id", "account_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(nullable=False)
    credit: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    line_seq: Mapped[int] = mapped_column(nullable=False)

    # Relationships
    entry: Mapped[JournalEntry] = relationship(back_populates="lines")
    account: Mapped[Account] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalEntryLine {self.line_seq}: Dr {self.debit} / Cr {self.credit}>"
