"""
BillingLedger -- payments, payment methods, credit notes and debit notes.

Responsibility:
    Records money received against invoices owned by the invoicing
    collaborator while guaranteeing that no invoice is ever paid beyond its
    total, and records credit/debit notes with their computed totals.

Architecture position:
    Kernel > Services -- imperative shell, owns the transaction boundary of
    each call.  Talks to invoicing and catalogs only through the Protocols
    in services/collaborators.py.

Invariants enforced:
    - Payment ceiling: for every invoice, the sum of its payments never
      exceeds the invoice total.  The check runs after the invoice's
      PAYMENT counter row has been locked, so concurrent payments against
      the same invoice are checked one at a time against committed sums.
    - Payment amounts are positive and at currency-unit precision.
    - Note line_total == quantity * unit_price; subtotal == total ==
      sum(line_total).
    - Note numbers come from the tenant's CREDIT_NOTE / DEBIT_NOTE counters.

Failure modes:
    - InvoiceNotFoundError, PaymentMethodNotFoundError,
      CustomerNotFoundError, ProductNotFoundError (not found).
    - PaymentMethodInactiveError, InvalidAmountError, EmptyNoteError,
      InvalidNoteItemError, InvalidFieldError (validation).
    - PaymentExceedsBalanceError, DuplicatePaymentMethodError (conflict).

Non-goals:
    - Notes do not change the invoice total or the remaining balance.
    - No update or delete of payments or notes.
"""

import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.base import coerce_uuid, column_length
from ledger_kernel.db.types import round_money
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    CreditNoteInfo,
    DebitNoteInfo,
    InvoiceBalance,
    InvoiceSummary,
    NoteItemInput,
    NoteStatus,
    Page,
    PaymentInfo,
    PaymentMethodInfo,
    PaymentMethodType,
)
from ledger_kernel.domain.filters import (
    CreditNoteFilters,
    DebitNoteFilters,
    PaymentFilters,
    PaymentMethodFilters,
    PaymentMethodPatch,
)
from ledger_kernel.domain.money import ZERO, positive_amount, sum_amounts, to_amount
from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.domain.validation import (
    coerce_enum,
    optional_text,
    require_bool,
    require_date,
    require_text,
)
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.exceptions import (
    CustomerNotFoundError,
    DuplicatePaymentMethodError,
    EmptyNoteError,
    InvalidAmountError,
    InvalidNoteItemError,
    InvoiceNotFoundError,
    PaymentExceedsBalanceError,
    PaymentMethodInactiveError,
    PaymentMethodNotFoundError,
    ProductNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.billing import Payment, PaymentMethod
from ledger_kernel.models.notes import (
    CreditNote,
    CreditNoteItem,
    DebitNote,
    DebitNoteItem,
)
from ledger_kernel.selectors.billing_selector import (
    BillingSelector,
    credit_note_to_info,
    debit_note_to_info,
    method_to_info,
    payment_to_info,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.collaborators import (
    CustomerCatalog,
    InvoiceGateway,
    InvoiceSnapshot,
    ProductCatalog,
)
from ledger_kernel.services.numbering_service import (
    DocumentType,
    NumberingService,
    payment_sequence_name,
)

logger = get_logger("services.billing")


@dataclasses.dataclass(frozen=True)
class _CheckedItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    reason: str | None


def _invoice_summary(invoice: InvoiceSnapshot) -> InvoiceSummary:
    return InvoiceSummary(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        total=invoice.total,
        status=invoice.status,
    )


class BillingLedger(BaseService):
    """
    Billing commands and queries.

    Contract:
        ``invoices`` is required.  ``customers`` and ``products`` are
        optional: when absent, debit-note customers and note products are
        accepted without an existence check.
    """

    logger = logger

    def __init__(
        self,
        database: LedgerDatabase,
        invoices: InvoiceGateway,
        customers: CustomerCatalog | None = None,
        products: ProductCatalog | None = None,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(database, policy, clock)
        self.invoices = invoices
        self.customers = customers
        self.products = products

    # -- Helpers ------------------------------------------------------------

    def _require_invoice(self, tenant_id: str, invoice_id: str) -> InvoiceSnapshot:
        invoice = self.invoices.get_invoice(invoice_id, tenant_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    @staticmethod
    def _load_method(
        session: Session, tenant_id: str, method_id: UUID | str
    ) -> PaymentMethod | None:
        method_uuid = coerce_uuid(method_id)
        if method_uuid is None:
            return None
        return session.execute(
            select(PaymentMethod).where(
                PaymentMethod.tenant_id == tenant_id,
                PaymentMethod.id == method_uuid,
            )
        ).scalar_one_or_none()

    @staticmethod
    def _method_name_taken(session: Session, tenant_id: str, name: str) -> bool:
        return (
            session.execute(
                select(PaymentMethod.id).where(
                    PaymentMethod.tenant_id == tenant_id,
                    PaymentMethod.name == name,
                )
            ).first()
            is not None
        )

    @staticmethod
    def _fees(value: Any) -> Decimal:
        fees = to_amount(value, "fees")
        if fees < ZERO:
            raise InvalidAmountError("fees", str(fees), "must not be negative")
        return fees

    def _check_items(self, items: Sequence[NoteItemInput], note_kind: str) -> list[_CheckedItem]:
        items = tuple(items or ())
        if not items:
            raise EmptyNoteError(note_kind)

        places = self.policy.decimal_places
        product_id_length = column_length(CreditNoteItem.product_id)
        reason_length = column_length(CreditNoteItem.reason)
        checked: list[_CheckedItem] = []
        for index, item in enumerate(items):
            if not isinstance(item.product_id, str) or not item.product_id.strip():
                raise InvalidNoteItemError(index, "product_id is required")
            if len(item.product_id.strip()) > product_id_length:
                raise InvalidNoteItemError(
                    index, f"product_id must be at most {product_id_length} characters"
                )
            quantity = item.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidNoteItemError(index, "quantity must be a positive integer")
            try:
                unit_price = positive_amount(item.unit_price, "unit_price", places)
            except InvalidAmountError as exc:
                raise InvalidNoteItemError(index, f"unit_price {exc.reason}") from None
            unit_price = round_money(unit_price, places)
            checked.append(
                _CheckedItem(
                    product_id=item.product_id.strip(),
                    quantity=quantity,
                    unit_price=unit_price,
                    line_total=unit_price * quantity,
                    reason=optional_text(item.reason, f"items[{index}].reason", reason_length),
                )
            )
        return checked

    def _check_products(self, tenant_id: str, items: list[_CheckedItem]) -> None:
        if self.products is None:
            return
        for item in items:
            if not self.products.product_exists(item.product_id, tenant_id):
                raise ProductNotFoundError(item.product_id)

    # -- Payment methods ----------------------------------------------------

    def create_payment_method(
        self,
        tenant_id: str,
        name: str,
        method_type: PaymentMethodType | str,
        description: str | None = None,
        fees: Decimal | int | str = Decimal("0"),
        is_active: bool = True,
        actor_id: UUID | str | None = None,
    ) -> PaymentMethodInfo:
        """
        Register a payment method for the tenant.

        Raises:
            InvalidFieldError, InvalidAmountError, DuplicatePaymentMethodError.
        """
        with self.guarded(
            "payment_method_rejected", tenant_id, actor_id, operation="create_payment_method"
        ):
            name = require_text(name, "name", column_length(PaymentMethod.name))
            method_type = coerce_enum(PaymentMethodType, method_type, "method_type")
            description = optional_text(description, "description")
            fees = self._fees(fees)
            is_active = require_bool(is_active, "is_active")

            with self.database.transaction("create_payment_method") as session:
                if self._method_name_taken(session, tenant_id, name):
                    raise DuplicatePaymentMethodError(name)
                method = PaymentMethod(
                    tenant_id=tenant_id,
                    name=name,
                    method_type=method_type.value,
                    description=description,
                    fees=fees,
                    is_active=is_active,
                    created_by_id=coerce_uuid(actor_id),
                )
                session.add(method)
                try:
                    session.flush()
                except IntegrityError:
                    raise DuplicatePaymentMethodError(name) from None
                info = method_to_info(method, 0)

        logger.info(
            "payment_method_created",
            extra={
                "payment_method_id": str(info.id),
                "method_name": info.name,
                "method_type": info.method_type.value,
            },
        )
        return info

    def update_payment_method(
        self,
        tenant_id: str,
        method_id: UUID | str,
        patch: PaymentMethodPatch,
        actor_id: UUID | str | None = None,
    ) -> PaymentMethodInfo:
        """
        Apply the fields set on ``patch``.

        Raises:
            PaymentMethodNotFoundError, InvalidFieldError, InvalidAmountError,
            DuplicatePaymentMethodError.
        """
        with self.guarded(
            "payment_method_rejected", tenant_id, actor_id, operation="update_payment_method"
        ):
            changes = patch.changes()

            with self.database.transaction("update_payment_method") as session:
                method = self._load_method(session, tenant_id, method_id)
                if method is None:
                    raise PaymentMethodNotFoundError(str(method_id))

                if "name" in changes:
                    name = require_text(
                        changes["name"], "name", column_length(PaymentMethod.name)
                    )
                    if name != method.name:
                        if self._method_name_taken(session, tenant_id, name):
                            raise DuplicatePaymentMethodError(name)
                        method.name = name
                if "method_type" in changes:
                    method.method_type = coerce_enum(
                        PaymentMethodType, changes["method_type"], "method_type"
                    ).value
                if "description" in changes:
                    method.description = optional_text(changes["description"], "description")
                if "fees" in changes:
                    method.fees = self._fees(changes["fees"])
                if "is_active" in changes:
                    method.is_active = require_bool(changes["is_active"], "is_active")

                method.updated_by_id = coerce_uuid(actor_id)
                try:
                    session.flush()
                except IntegrityError:
                    raise DuplicatePaymentMethodError(method.name) from None

                info = BillingSelector(session, self.policy).get_payment_method(
                    tenant_id, method.id
                )

        logger.info(
            "payment_method_updated",
            extra={"payment_method_id": str(info.id), "changed_fields": sorted(changes)},
        )
        return info

    def list_payment_methods(
        self,
        tenant_id: str,
        filters: PaymentMethodFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentMethodInfo]:
        with self.database.transaction("list_payment_methods") as session:
            return BillingSelector(session, self.policy).list_payment_methods(
                tenant_id, filters, page, limit
            )

    # -- Payments -----------------------------------------------------------

    def create_payment(
        self,
        tenant_id: str,
        invoice_id: str,
        amount: Decimal | int | float | str,
        payment_method_id: UUID | str,
        payment_date: date,
        reference: str | None = None,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> PaymentInfo:
        """
        Record a payment against an invoice.

        Preconditions:
            The invoice exists in invoicing; the payment method exists in
            the tenant and is active; amount is positive.

        Postconditions:
            Sum of the invoice's payments <= invoice total.  The result
            carries the remaining balance after this payment.

        Raises:
            InvoiceNotFoundError, PaymentMethodNotFoundError,
            PaymentMethodInactiveError, InvalidAmountError,
            PaymentExceedsBalanceError.
        """
        with self.guarded(
            "payment_rejected",
            tenant_id,
            actor_id,
            operation="create_payment",
            invoice_id=str(invoice_id),
        ):
            invoice_id = require_text(invoice_id, "invoice_id", column_length(Payment.invoice_id))
            payment_date = require_date(payment_date, "payment_date")
            reference = optional_text(
                reference, "reference", column_length(Payment.reference)
            )
            notes = optional_text(notes, "notes")

            invoice = self._require_invoice(tenant_id, invoice_id)

            with self.database.transaction("create_payment") as session:
                method = self._load_method(session, tenant_id, payment_method_id)
                if method is None:
                    raise PaymentMethodNotFoundError(str(payment_method_id))
                if not method.is_active:
                    raise PaymentMethodInactiveError(str(method.id))

                amount = round_money(
                    positive_amount(amount, "amount", self.policy.decimal_places),
                    self.policy.decimal_places,
                )

                # Locks the invoice's counter row; concurrent payments to the
                # same invoice wait here until this transaction ends.
                seq = NumberingService(session, self.policy).next_value(
                    tenant_id, payment_sequence_name(invoice_id)
                )

                paid = BillingSelector(session, self.policy).paid_total(tenant_id, invoice_id)
                remaining = invoice.total - paid
                if amount > remaining:
                    raise PaymentExceedsBalanceError(invoice_id, amount, remaining)

                payment = Payment(
                    tenant_id=tenant_id,
                    invoice_id=invoice_id,
                    payment_method_id=method.id,
                    amount=amount,
                    payment_date=payment_date,
                    reference=reference,
                    notes=notes,
                    user_id=coerce_uuid(actor_id),
                    invoice_payment_seq=seq,
                    created_by_id=coerce_uuid(actor_id),
                )
                payment.payment_method = method
                session.add(payment)
                session.flush()

                info = dataclasses.replace(
                    payment_to_info(payment),
                    invoice=_invoice_summary(invoice),
                    remaining_balance=remaining - amount,
                )

        logger.info(
            "payment_recorded",
            extra={
                "payment_id": str(info.id),
                "invoice_id": invoice_id,
                "amount": info.amount,
                "remaining_balance": info.remaining_balance,
                "invoice_payment_seq": seq,
            },
        )
        return info

    def get_invoice_balance(self, tenant_id: str, invoice_id: str) -> InvoiceBalance:
        """Invoice total, payments so far and what is left to pay."""
        invoice = self._require_invoice(tenant_id, invoice_id)
        with self.database.transaction("get_invoice_balance") as session:
            paid = BillingSelector(session, self.policy).paid_total(tenant_id, invoice_id)
        return InvoiceBalance(
            invoice_id=invoice_id,
            total=invoice.total,
            paid=paid,
            remaining=invoice.total - paid,
        )

    def list_payments(
        self,
        tenant_id: str,
        filters: PaymentFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[PaymentInfo]:
        """Payments newest first, each with its invoice summary when invoicing knows it."""
        with self.database.transaction("list_payments") as session:
            result = BillingSelector(session, self.policy).list_payments(
                tenant_id, filters, page, limit
            )

        snapshots: dict[str, InvoiceSnapshot | None] = {}
        items = []
        for payment in result.items:
            if payment.invoice_id not in snapshots:
                snapshots[payment.invoice_id] = self.invoices.get_invoice(
                    payment.invoice_id, tenant_id
                )
            snapshot = snapshots[payment.invoice_id]
            if snapshot is not None:
                payment = dataclasses.replace(payment, invoice=_invoice_summary(snapshot))
            items.append(payment)
        return dataclasses.replace(result, items=tuple(items))

    # -- Notes --------------------------------------------------------------

    def create_credit_note(
        self,
        tenant_id: str,
        invoice_id: str,
        items: Sequence[NoteItemInput],
        reason: str,
        note_date: date,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> CreditNoteInfo:
        """
        Record a DRAFT credit note against an invoice.

        The invoice total and remaining balance are not adjusted.

        Raises:
            InvoiceNotFoundError, EmptyNoteError, InvalidNoteItemError,
            ProductNotFoundError, InvalidFieldError.
        """
        with self.guarded(
            "note_rejected", tenant_id, actor_id, operation="create_credit_note"
        ):
            invoice_id = require_text(invoice_id, "invoice_id", column_length(Payment.invoice_id))
            self._require_invoice(tenant_id, invoice_id)
            reason = require_text(reason, "reason", column_length(CreditNote.reason))
            note_date = require_date(note_date, "note_date")
            notes = optional_text(notes, "notes")
            checked = self._check_items(items, "Credit note")
            self._check_products(tenant_id, checked)

            total = sum_amounts(item.line_total for item in checked)
            actor_uuid = coerce_uuid(actor_id)

            with self.database.transaction("create_credit_note") as session:
                number = NumberingService(session, self.policy).next(
                    tenant_id, DocumentType.CREDIT_NOTE
                )
                note = CreditNote(
                    tenant_id=tenant_id,
                    credit_note_number=number,
                    invoice_id=invoice_id,
                    reason=reason,
                    note_date=note_date,
                    notes=notes,
                    subtotal=total,
                    total=total,
                    status=NoteStatus.DRAFT.value,
                    created_by_id=actor_uuid,
                )
                for seq, item in enumerate(checked):
                    note.items.append(
                        CreditNoteItem(
                            tenant_id=tenant_id,
                            product_id=item.product_id,
                            quantity=item.quantity,
                            unit_price=item.unit_price,
                            line_total=item.line_total,
                            reason=item.reason,
                            item_seq=seq,
                            created_by_id=actor_uuid,
                        )
                    )
                session.add(note)
                session.flush()
                info = credit_note_to_info(note)

        with LogContext.bind(document_number=info.credit_note_number):
            logger.info(
                "credit_note_created",
                extra={
                    "tenant_id": tenant_id,
                    "invoice_id": invoice_id,
                    "item_count": len(info.items),
                    "total": info.total,
                },
            )
        return info

    def create_debit_note(
        self,
        tenant_id: str,
        customer_id: str,
        items: Sequence[NoteItemInput],
        reason: str,
        note_date: date,
        notes: str | None = None,
        actor_id: UUID | str | None = None,
    ) -> DebitNoteInfo:
        """
        Record a DRAFT debit note for a customer.

        Raises:
            CustomerNotFoundError, EmptyNoteError, InvalidNoteItemError,
            ProductNotFoundError, InvalidFieldError.
        """
        with self.guarded(
            "note_rejected", tenant_id, actor_id, operation="create_debit_note"
        ):
            customer_id = require_text(
                customer_id, "customer_id", column_length(DebitNote.customer_id)
            )
            if self.customers is not None and not self.customers.customer_exists(
                customer_id, tenant_id
            ):
                raise CustomerNotFoundError(customer_id)
            reason = require_text(reason, "reason", column_length(DebitNote.reason))
            note_date = require_date(note_date, "note_date")
            notes = optional_text(notes, "notes")
            checked = self._check_items(items, "Debit note")
            self._check_products(tenant_id, checked)

            total = sum_amounts(item.line_total for item in checked)
            actor_uuid = coerce_uuid(actor_id)

            with self.database.transaction("create_debit_note") as session:
                number = NumberingService(session, self.policy).next(
                    tenant_id, DocumentType.DEBIT_NOTE
                )
                note = DebitNote(
                    tenant_id=tenant_id,
                    debit_note_number=number,
                    customer_id=customer_id,
                    reason=reason,
                    note_date=note_date,
                    notes=notes,
                    subtotal=total,
                    total=total,
                    status=NoteStatus.DRAFT.value,
                    created_by_id=actor_uuid,
                )
                for seq, item in enumerate(checked):
                    note.items.append(
                        DebitNoteItem(
                            tenant_id=tenant_id,
                            product_id=item.product_id,
                            quantity=item.quantity,
                            unit_price=item.unit_price,
                            line_total=item.line_total,
                            reason=item.reason,
                            item_seq=seq,
                            created_by_id=actor_uuid,
                        )
                    )
                session.add(note)
                session.flush()
                info = debit_note_to_info(note)

        with LogContext.bind(document_number=info.debit_note_number):
            logger.info(
                "debit_note_created",
                extra={
                    "tenant_id": tenant_id,
                    "customer_id": customer_id,
                    "item_count": len(info.items),
                    "total": info.total,
                },
            )
        return info

    def list_credit_notes(
        self,
        tenant_id: str,
        filters: CreditNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[CreditNoteInfo]:
        with self.database.transaction("list_credit_notes") as session:
            return BillingSelector(session, self.policy).list_credit_notes(
                tenant_id, filters, page, limit
            )

    def list_debit_notes(
        self,
        tenant_id: str,
        filters: DebitNoteFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[DebitNoteInfo]:
        with self.database.transaction("list_debit_notes") as session:
            return BillingSelector(session, self.policy).list_debit_notes(
                tenant_id, filters, page, limit
            )
