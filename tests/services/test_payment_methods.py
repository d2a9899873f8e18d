"""Tests for payment method registration and updates."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import PaymentMethodType
from ledger_kernel.domain.filters import PaymentMethodFilters, PaymentMethodPatch
from ledger_kernel.exceptions import (
    DuplicatePaymentMethodError,
    InvalidAmountError,
    InvalidFieldError,
    PaymentMethodNotFoundError,
)
from tests.conftest import TENANT_A, TENANT_B


class TestCreatePaymentMethod:

    def test_create(self, kernel):
        method = kernel.create_payment_method(
            TENANT_A, "Visa", "CREDIT_CARD", description="Terminal 1", fees="2.5"
        )

        assert method.name == "Visa"
        assert method.method_type is PaymentMethodType.CREDIT_CARD
        assert method.description == "Terminal 1"
        assert method.fees == Decimal("2.5")
        assert method.is_active is True
        assert method.payment_count == 0

    def test_duplicate_name_rejected(self, kernel):
        kernel.create_payment_method(TENANT_A, "Cash", "CASH")

        with pytest.raises(DuplicatePaymentMethodError):
            kernel.create_payment_method(TENANT_A, "Cash", "OTHER")

    def test_same_name_in_other_tenant(self, kernel):
        kernel.create_payment_method(TENANT_A, "Cash", "CASH")

        method = kernel.create_payment_method(TENANT_B, "Cash", "CASH")

        assert method.tenant_id == TENANT_B

    def test_unknown_type_rejected(self, kernel):
        with pytest.raises(InvalidFieldError):
            kernel.create_payment_method(TENANT_A, "Crypto", "BITCOIN")

    def test_name_longer_than_column_rejected(self, kernel):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_payment_method(TENANT_A, "n" * 101, "CASH")
        assert exc_info.value.field == "name"

    def test_negative_fees_rejected(self, kernel):
        with pytest.raises(InvalidAmountError):
            kernel.create_payment_method(TENANT_A, "Cash", "CASH", fees="-1")


class TestUpdatePaymentMethod:

    def test_partial_update(self, kernel):
        method = kernel.create_payment_method(TENANT_A, "Cash", "CASH", description="Front desk")

        updated = kernel.update_payment_method(
            TENANT_A, method.id, PaymentMethodPatch(fees="1.25", method_type="OTHER")
        )

        assert updated.fees == Decimal("1.25")
        assert updated.method_type is PaymentMethodType.OTHER
        assert updated.name == "Cash"
        assert updated.description == "Front desk"

    def test_clear_description(self, kernel):
        method = kernel.create_payment_method(TENANT_A, "Cash", "CASH", description="x")

        updated = kernel.update_payment_method(
            TENANT_A, method.id, PaymentMethodPatch(description=None)
        )

        assert updated.description is None

    def test_rename_to_taken_name_rejected(self, kernel):
        kernel.create_payment_method(TENANT_A, "Cash", "CASH")
        card = kernel.create_payment_method(TENANT_A, "Card", "DEBIT_CARD")

        with pytest.raises(DuplicatePaymentMethodError):
            kernel.update_payment_method(TENANT_A, card.id, PaymentMethodPatch(name="Cash"))

    def test_unknown_method(self, kernel):
        with pytest.raises(PaymentMethodNotFoundError):
            kernel.update_payment_method(TENANT_A, uuid4(), PaymentMethodPatch(name="x"))

    def test_other_tenant_cannot_update(self, kernel):
        method = kernel.create_payment_method(TENANT_A, "Cash", "CASH")

        with pytest.raises(PaymentMethodNotFoundError):
            kernel.update_payment_method(TENANT_B, method.id, PaymentMethodPatch(is_active=False))


class TestListPaymentMethods:

    def test_ordered_by_name_and_filtered(self, kernel):
        kernel.create_payment_method(TENANT_A, "Wire", "BANK_TRANSFER")
        kernel.create_payment_method(TENANT_A, "Cash", "CASH")
        check = kernel.create_payment_method(TENANT_A, "Cheque", "CHECK")
        kernel.update_payment_method(TENANT_A, check.id, PaymentMethodPatch(is_active=False))

        all_names = [m.name for m in kernel.list_payment_methods(TENANT_A).items]
        assert all_names == ["Cash", "Cheque", "Wire"]

        active = kernel.list_payment_methods(TENANT_A, PaymentMethodFilters(is_active=True))
        assert [m.name for m in active.items] == ["Cash", "Wire"]

        wires = kernel.list_payment_methods(
            TENANT_A, PaymentMethodFilters(method_type=PaymentMethodType.BANK_TRANSFER)
        )
        assert [m.name for m in wires.items] == ["Wire"]

        searched = kernel.list_payment_methods(TENANT_A, PaymentMethodFilters(search="ch"))
        assert [m.name for m in searched.items] == ["Cheque"]

    def test_tenant_scoped(self, kernel):
        kernel.create_payment_method(TENANT_A, "Cash", "CASH")

        assert kernel.list_payment_methods(TENANT_B).total == 0
