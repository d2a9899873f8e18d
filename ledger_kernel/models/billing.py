"""
Module: ledger_kernel.models.billing
Responsibility: ORM persistence for payment methods and the payments
    recorded against invoices owned by the invoicing collaborator.
Architecture position: Kernel > Models.  May import from db/ and the domain
    enums only.

Invariants enforced:
    - Payment method name is unique within a tenant.
    - Payments are immutable once written.
    - invoice_payment_seq is unique per (tenant_id, invoice_id); it comes
      from the invoice's counter row, whose lock serializes concurrent
      payments to the same invoice.
    - For every invoice, the sum of its payment amounts never exceeds the
      invoice total (checked by BillingLedger under that lock).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScoped, UUIDString
from ledger_kernel.domain.dtos import PaymentMethodType


class PaymentMethod(TenantScoped):
    """A way a tenant accepts money (cash, card, transfer, ...)."""

    __tablename__ = "payment_methods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_payment_method_tenant_name"),
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    method_type: Mapped[PaymentMethodType] = mapped_column(
        String(20),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Processing fee charged for the method; informational only
    fees: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    payments: Mapped[list["Payment"]] = relationship(
        back_populates="payment_method",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<PaymentMethod {self.name} ({self.method_type})>"


class Payment(TenantScoped):
    """
    Money received against one invoice.

    Contract:
        Never updated or deleted.  user_id records who captured it.
    """

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "invoice_id",
            "invoice_payment_seq",
            name="uq_payment_invoice_seq",
        ),
        Index("idx_payment_tenant_invoice", "tenant_id", "invoice_id"),
        Index("idx_payment_tenant_created", "tenant_id", "created_at"),
    )

    # Invoice id in the invoicing collaborator's namespace
    invoice_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    payment_method_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("payment_methods.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # 1, 2, 3... per invoice
    invoice_payment_seq: Mapped[int] = mapped_column(nullable=False)

    payment_method: Mapped[PaymentMethod] = relationship(back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment {self.invoice_id}#{self.invoice_payment_seq}: {self.amount}>"
