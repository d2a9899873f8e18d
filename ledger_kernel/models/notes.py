"""
Module: ledger_kernel.models.notes
Responsibility: ORM persistence for credit notes (keyed to an invoice) and
    debit notes (keyed to a customer), with their item lines.
Architecture position: Kernel > Models.  May import from db/ and the domain
    enums only.

Invariants enforced:
    - Note numbers are unique within a tenant (CN-000001, DN-000001).
    - subtotal == total == sum(item.line_total), and
      item.line_total == quantity * unit_price, all computed at creation.
    - Header and items are written in one transaction and never updated.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScoped, UUIDString
from ledger_kernel.domain.dtos import NoteStatus


class CreditNote(TenantScoped):
    """Reduction owed to a customer against one invoice."""

    __tablename__ = "credit_notes"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "credit_note_number", name="uq_credit_note_tenant_number"
        ),
        Index("idx_credit_note_tenant_invoice", "tenant_id", "invoice_id"),
    )

    credit_note_number: Mapped[str] = mapped_column(String(32), nullable=False)

    invoice_id: Mapped[str] = mapped_column(String(64), nullable=False)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    note_date: Mapped[date] = mapped_column(Date, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[NoteStatus] = mapped_column(
        String(20),
        nullable=False,
        default=NoteStatus.DRAFT.value,
    )

    items: Mapped[list["CreditNoteItem"]] = relationship(
        back_populates="credit_note",
        cascade="all, delete-orphan",
        order_by="CreditNoteItem.item_seq",
    )

    def __repr__(self) -> str:
        return f"<CreditNote {self.credit_note_number}: {self.total}>"


class CreditNoteItem(TenantScoped):
    __tablename__ = "credit_note_items"

    credit_note_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("credit_notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_id: Mapped[str] = mapped_column(String(64), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    # quantity * unit_price
    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    item_seq: Mapped[int] = mapped_column(nullable=False)

    credit_note: Mapped[CreditNote] = relationship(back_populates="items")


class DebitNote(TenantScoped):
    """Additional amount charged to a customer."""

    __tablename__ = "debit_notes"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "debit_note_number", name="uq_debit_note_tenant_number"
        ),
        Index("idx_debit_note_tenant_customer", "tenant_id", "customer_id"),
    )

    debit_note_number: Mapped[str] = mapped_column(String(32), nullable=False)

    # Customer id in the customer catalog's namespace
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)

    reason: Mapped[str] = mapped_column(String(500), nullable=False)

    note_date: Mapped[date] = mapped_column(Date, nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[NoteStatus] = mapped_column(
        String(20),
        nullable=False,
        default=NoteStatus.DRAFT.value,
    )

    items: Mapped[list["DebitNoteItem"]] = relationship(
        back_populates="debit_note",
        cascade="all, delete-orphan",
        order_by="DebitNoteItem.item_seq",
    )

    def __repr__(self) -> str:
        return f"<DebitNote {self.debit_note_number}: {self.total}>"


class DebitNoteItem(TenantScoped):
    __tablename__ = "debit_note_items"

    debit_note_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("debit_notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_id: Mapped[str] = mapped_column(String(64), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    line_total: Mapped[Decimal] = mapped_column(nullable=False)

    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    item_seq: Mapped[int] = mapped_column(nullable=False)

    debit_note: Mapped[DebitNote] = relationship(back_populates="items")
