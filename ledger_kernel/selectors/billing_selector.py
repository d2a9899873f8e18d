"""
Module: ledger_kernel.selectors.billing_selector
Responsibility: Read-only queries over payment methods, payments and
    credit/debit notes.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Tenant isolation on every query.
    - Paid totals are summed in Python over exact Decimals; no SQL SUM, so
      SQLite's string-stored amounts are never coerced to floats.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import false, func, select
from sqlalchemy.orm import selectinload

from ledger_kernel.db.base import coerce_uuid
from ledger_kernel.domain.dtos import (
    CreditNoteInfo,
    DebitNoteInfo,
    NoteItemInfo,
    NoteStatus,
    Page,
    PaymentInfo,
    PaymentMethodInfo,
    PaymentMethodSummary,
    PaymentMethodType,
)
from ledger_kernel.domain.filters import (
    CreditNoteFilters,
    DebitNoteFilters,
    PaymentFilters,
    PaymentMethodFilters,
)
from ledger_kernel.domain.money import sum_amounts
from ledger_kernel.domain.validation import coerce_enum
from ledger_kernel.models.billing import Payment, PaymentMethod
from ledger_kernel.models.notes import CreditNote, DebitNote
from ledger_kernel.selectors.base import BaseSelector, newest_number_first, search_clause


def method_summary(method: PaymentMethod) -> PaymentMethodSummary:
    return PaymentMethodSummary(
        id=method.id,
        name=method.name,
        method_type=PaymentMethodType(method.method_type),
    )


def method_to_info(method: PaymentMethod, payment_count: int) -> PaymentMethodInfo:
    return PaymentMethodInfo(
        id=method.id,
        tenant_id=method.tenant_id,
        name=method.name,
        method_type=PaymentMethodType(method.method_type),
        description=method.description,
        fees=method.fees,
        is_active=method.is_active,
        payment_count=payment_count,
        created_at=method.created_at,
    )


def payment_to_info(payment: Payment) -> PaymentInfo:
    return PaymentInfo(
        id=payment.id,
        tenant_id=payment.tenant_id,
        invoice_id=payment.invoice_id,
        amount=payment.amount,
        payment_date=payment.payment_date,
        reference=payment.reference,
        notes=payment.notes,
        user_id=payment.user_id,
        invoice_payment_seq=payment.invoice_payment_seq,
        payment_method=method_summary(payment.payment_method),
        created_at=payment.created_at,
    )


def _items_to_info(items) -> tuple[NoteItemInfo, ...]:
    return tuple(
        NoteItemInfo(
            id=item.id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
            reason=item.reason,
        )
        for item in sorted(items, key=lambda i: i.item_seq)
    )


def credit_note_to_info(note: CreditNote) -> CreditNoteInfo:
    return CreditNoteInfo(
        id=note.id,
        tenant_id=note.tenant_id,
        credit_note_number=note.credit_note_number,
        invoice_id=note.invoice_id,
        reason=note.reason,
        note_date=note.note_date,
        notes=note.notes,
        subtotal=note.subtotal,
        total=note.total,
        status=NoteStatus(note.status),
        items=_items_to_info(note.items),
        created_at=note.created_at,
        created_by_id=note.created_by_id,
    )


def debit_note_to_info(note: DebitNote) -> DebitNoteInfo:
    return DebitNoteInfo(
        id=note.id,
        tenant_id=note.tenant_id,
        debit_note_number=note.debit_note_number,
        customer_id=note.customer_id,
        reason=note.reason,
        note_date=note.note_date,
        notes=note.notes,
        subtotal=note.subtotal,
        total=note.total,
        status=NoteStatus(note.status),
        items=_items_to_info(note.items),
        created_at=note.created_at,
        created_by_id=note.created_by_id,
    )


class BillingSelector(BaseSelector):
    """Read-only billing queries."""

    # -- Payment methods ----------------------------------------------------

    def payment_counts(self, tenant_id: str, method_ids: list[UUID]) -> dict[UUID, int]:
        if not method_ids:
            return {}
        rows = self.session.execute(
            select(Payment.payment_method_id, func.count(Payment.id))
            .where(
                Payment.tenant_id == tenant_id,
                Payment.payment_method_id.in_(method_ids),
            )
            .group_by(Payment.payment_method_id)
        ).all()
        return {method_id: count for method_id, count in rows}

    def get_payment_method(
        self, tenant_id: str, method_id: UUID | str
    ) -> PaymentMethodInfo | None:
        method_uuid = coerce_uuid(method_id)
        if method_uuid is None:
            return None
        method = self.session.execute(
            select(PaymentMethod).where(
                PaymentMethod.tenant_id == tenant_id,
                PaymentMethod.id == method_uuid,
            )
        ).scalar_one_or_none()
        if method is None:
            return None
        counts = self.payment_counts(tenant_id, [method.id])
        return method_to_info(method, counts.get(method.id, 0))

    def list_payment_methods(
        self,
        tenant_id: str,
        filters: PaymentMethodFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentMethodInfo]:
        """Payment methods ordered by name."""
        filters = filters or PaymentMethodFilters()
        stmt = select(PaymentMethod).where(PaymentMethod.tenant_id == tenant_id)

        clause = search_clause(
            filters.search, PaymentMethod.name, PaymentMethod.description
        )
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.method_type is not None:
            method_type = coerce_enum(PaymentMethodType, filters.method_type, "method_type")
            stmt = stmt.where(PaymentMethod.method_type == method_type.value)
        if filters.is_active is not None:
            stmt = stmt.where(PaymentMethod.is_active == filters.is_active)

        stmt = stmt.order_by(PaymentMethod.name.asc(), PaymentMethod.id.asc())

        def to_dto(methods: list[PaymentMethod]) -> list[PaymentMethodInfo]:
            counts = self.payment_counts(tenant_id, [m.id for m in methods])
            return [method_to_info(m, counts.get(m.id, 0)) for m in methods]

        return self.paginate(stmt, page, limit, to_dto)

    # -- Payments -----------------------------------------------------------

    def paid_total(self, tenant_id: str, invoice_id: str) -> Decimal:
        """Sum of all payment amounts recorded against the invoice."""
        amounts = self.session.execute(
            select(Payment.amount).where(
                Payment.tenant_id == tenant_id,
                Payment.invoice_id == invoice_id,
            )
        ).scalars()
        return sum_amounts(amounts)

    def list_payments(
        self,
        tenant_id: str,
        filters: PaymentFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentInfo]:
        """Payments newest first.  Invoice summaries are not filled in here."""
        filters = filters or PaymentFilters()
        stmt = select(Payment).where(Payment.tenant_id == tenant_id)

        clause = search_clause(filters.search, Payment.reference, Payment.notes)
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.invoice_id is not None:
            stmt = stmt.where(Payment.invoice_id == filters.invoice_id)
        if filters.payment_method_id is not None:
            method_uuid = coerce_uuid(filters.payment_method_id)
            stmt = stmt.where(
                Payment.payment_method_id == method_uuid if method_uuid else false()
            )
        if filters.start_date is not None:
            stmt = stmt.where(Payment.payment_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Payment.payment_date <= filters.end_date)

        stmt = stmt.order_by(
            Payment.created_at.desc(),
            Payment.payment_date.desc(),
            Payment.invoice_payment_seq.desc(),
            Payment.id.desc(),
        )
        return self.paginate(
            stmt,
            page,
            limit,
            lambda payments: [payment_to_info(p) for p in payments],
            options=(selectinload(Payment.payment_method),),
        )

    # -- Notes --------------------------------------------------------------

    def list_credit_notes(
        self,
        tenant_id: str,
        filters: CreditNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[CreditNoteInfo]:
        filters = filters or CreditNoteFilters()
        stmt = select(CreditNote).where(CreditNote.tenant_id == tenant_id)

        clause = search_clause(
            filters.search,
            CreditNote.credit_note_number,
            CreditNote.reason,
            CreditNote.notes,
        )
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.status is not None:
            status = coerce_enum(NoteStatus, filters.status, "status")
            stmt = stmt.where(CreditNote.status == status.value)
        if filters.invoice_id is not None:
            stmt = stmt.where(CreditNote.invoice_id == filters.invoice_id)
        if filters.start_date is not None:
            stmt = stmt.where(CreditNote.note_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(CreditNote.note_date <= filters.end_date)

        stmt = stmt.order_by(
            CreditNote.created_at.desc(),
            *newest_number_first(CreditNote.credit_note_number),
        )
        return self.paginate(
            stmt,
            page,
            limit,
            lambda notes: [credit_note_to_info(n) for n in notes],
            options=(selectinload(CreditNote.items),),
        )

    def list_debit_notes(
        self,
        tenant_id: str,
        filters: DebitNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[DebitNoteInfo]:
        filters = filters or DebitNoteFilters()
        stmt = select(DebitNote).where(DebitNote.tenant_id == tenant_id)

        clause = search_clause(
            filters.search,
            DebitNote.debit_note_number,
            DebitNote.reason,
            DebitNote.notes,
        )
        if clause is not None:
            stmt = stmt.where(clause)
        if filters.status is not None:
            status = coerce_enum(NoteStatus, filters.status, "status")
            stmt = stmt.where(DebitNote.status == status.value)
        if filters.customer_id is not None:
            stmt = stmt.where(DebitNote.customer_id == filters.customer_id)
        if filters.start_date is not None:
            stmt = stmt.where(DebitNote.note_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(DebitNote.note_date <= filters.end_date)

        stmt = stmt.order_by(
            DebitNote.created_at.desc(),
            *newest_number_first(DebitNote.debit_note_number),
        )
        return self.paginate(
            stmt,
            page,
            limit,
            lambda notes: [debit_note_to_info(n) for n in notes],
            options=(selectinload(DebitNote.items),),
        )
