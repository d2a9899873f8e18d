"""
Tests for AccountRegistry: chart-of-accounts commands and queries.

Covers code uniqueness per tenant, normal-balance derivation, tree
validation, delete guards and tenant isolation.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import AccountType, JournalLineInput, NormalBalance
from ledger_kernel.domain.filters import AccountFilters, AccountPatch
from ledger_kernel.exceptions import (
    AccountHasChildrenError,
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountCodeError,
    InvalidFieldError,
    InvalidPaginationError,
    InvalidParentError,
    ParentAccountNotFoundError,
)
from tests.conftest import TENANT_A, TENANT_B, TEST_ACTOR_ID, TODAY


class TestCreateAccount:
    """Account creation and its validation."""

    def test_create_returns_full_info(self, kernel):
        info = kernel.create_account(
            TENANT_A,
            "1100",
            "Cash",
            "ASSET",
            description="Petty cash",
            actor_id=TEST_ACTOR_ID,
        )

        assert info.tenant_id == TENANT_A
        assert info.code == "1100"
        assert info.name == "Cash"
        assert info.description == "Petty cash"
        assert info.account_type is AccountType.ASSET
        assert info.is_active is True
        assert info.parent is None
        assert info.children == ()
        assert info.journal_line_count == 0

    @pytest.mark.parametrize(
        "account_type,expected",
        [
            ("ASSET", NormalBalance.DEBIT),
            ("EXPENSE", NormalBalance.DEBIT),
            ("LIABILITY", NormalBalance.CREDIT),
            ("EQUITY", NormalBalance.CREDIT),
            ("REVENUE", NormalBalance.CREDIT),
        ],
    )
    def test_normal_balance_follows_type(self, kernel, account_type, expected):
        info = kernel.create_account(TENANT_A, "9000", "Any", account_type)
        assert info.normal_balance is expected

    def test_enum_type_accepted(self, kernel):
        info = kernel.create_account(TENANT_A, "2100", "Payables", AccountType.LIABILITY)
        assert info.account_type is AccountType.LIABILITY

    def test_duplicate_code_in_same_tenant_rejected(self, kernel):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        with pytest.raises(DuplicateAccountCodeError) as exc_info:
            kernel.create_account(TENANT_A, "1100", "Other cash", "ASSET")

        assert exc_info.value.account_code == "1100"
        assert exc_info.value.kind == "conflict"

    def test_same_code_in_other_tenant_allowed(self, kernel):
        a = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        b = kernel.create_account(TENANT_B, "1100", "Cash", "ASSET")

        assert a.id != b.id
        assert b.tenant_id == TENANT_B

    def test_unknown_type_rejected(self, kernel):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_account(TENANT_A, "1100", "Cash", "INCOME")
        assert exc_info.value.field == "account_type"

    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_blank_code_rejected(self, kernel, code):
        with pytest.raises(InvalidFieldError):
            kernel.create_account(TENANT_A, code, "Cash", "ASSET")

    @pytest.mark.parametrize("is_active", ["false", 0, None])
    def test_is_active_must_be_boolean(self, kernel, is_active):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_account(TENANT_A, "1100", "Cash", "ASSET", is_active=is_active)
        assert exc_info.value.field == "is_active"
        assert kernel.list_accounts(TENANT_A).total == 0

    def test_code_longer_than_column_rejected(self, kernel):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_account(TENANT_A, "1" * 51, "Cash", "ASSET")
        assert exc_info.value.field == "code"

    def test_code_at_column_width_accepted(self, kernel):
        account = kernel.create_account(TENANT_A, "1" * 50, "Cash", "ASSET")
        assert len(account.code) == 50

    def test_name_longer_than_column_rejected(self, kernel):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_account(TENANT_A, "1100", "x" * 256, "ASSET")
        assert exc_info.value.field == "name"

    @pytest.mark.parametrize("tenant_id", ["", "t" * 65, None])
    def test_invalid_tenant_id_rejected(self, kernel, tenant_id):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.create_account(tenant_id, "1100", "Cash", "ASSET")
        assert exc_info.value.field == "tenant_id"

    def test_parent_must_exist(self, kernel):
        with pytest.raises(ParentAccountNotFoundError):
            kernel.create_account(TENANT_A, "1110", "Cash drawer", "ASSET", parent_id=uuid4())

    def test_parent_from_other_tenant_is_not_found(self, kernel):
        foreign = kernel.create_account(TENANT_B, "1100", "Cash", "ASSET")

        with pytest.raises(ParentAccountNotFoundError):
            kernel.create_account(TENANT_A, "1110", "Drawer", "ASSET", parent_id=foreign.id)

    def test_child_appears_under_parent(self, kernel):
        parent = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        child = kernel.create_account(TENANT_A, "1110", "Drawer", "ASSET", parent_id=parent.id)

        assert child.parent is not None
        assert child.parent.code == "1100"

        detail = kernel.get_account_by_id(TENANT_A, parent.id)
        assert [c.code for c in detail.account.children] == ["1110"]

    def test_created_event_logged(self, kernel, captured_logs):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        records = [r for r in captured_logs() if r["message"] == "account_created"]
        assert len(records) == 1
        assert records[0]["account_code"] == "1100"

    def test_rejection_logged_with_error_code(self, kernel, captured_logs):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        with pytest.raises(DuplicateAccountCodeError):
            kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        records = [r for r in captured_logs() if r["message"] == "account_rejected"]
        assert records[-1]["error_code"] == "DUPLICATE_ACCOUNT_CODE"
        assert records[-1]["level"] == "WARNING"
        assert records[-1]["tenant_id"] == TENANT_A


class TestUpdateAccount:
    """Partial updates through AccountPatch."""

    def test_rename_keeps_other_fields(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET", description="d")

        updated = kernel.update_account(TENANT_A, account.id, AccountPatch(name="Cash on hand"))

        assert updated.name == "Cash on hand"
        assert updated.code == "1100"
        assert updated.description == "d"

    def test_keeping_same_code_is_not_a_duplicate(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        updated = kernel.update_account(
            TENANT_A, account.id, AccountPatch(code="1100", name="Cash")
        )

        assert updated.code == "1100"

    def test_code_change_to_taken_code_rejected(self, kernel):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        other = kernel.create_account(TENANT_A, "1200", "Bank", "ASSET")

        with pytest.raises(DuplicateAccountCodeError):
            kernel.update_account(TENANT_A, other.id, AccountPatch(code="1100"))

    def test_type_change_rederives_normal_balance(self, kernel):
        account = kernel.create_account(TENANT_A, "2100", "Deposits", "ASSET")

        updated = kernel.update_account(
            TENANT_A, account.id, AccountPatch(account_type="LIABILITY")
        )

        assert updated.account_type is AccountType.LIABILITY
        assert updated.normal_balance is NormalBalance.CREDIT

    def test_type_change_blocked_when_referenced(self, kernel, standard_accounts, post_simple_entry):
        post_simple_entry()

        with pytest.raises(AccountReferencedError) as exc_info:
            kernel.update_account(
                TENANT_A, standard_accounts["cash"].id, AccountPatch(account_type="EXPENSE")
            )
        assert exc_info.value.line_count == 1

    def test_deactivate(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        updated = kernel.update_account(TENANT_A, account.id, AccountPatch(is_active=False))

        assert updated.is_active is False

    def test_parent_cannot_be_self(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        with pytest.raises(InvalidParentError):
            kernel.update_account(TENANT_A, account.id, AccountPatch(parent_id=account.id))

    def test_parent_cannot_be_descendant(self, kernel):
        root = kernel.create_account(TENANT_A, "1000", "Assets", "ASSET")
        child = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET", parent_id=root.id)
        grandchild = kernel.create_account(TENANT_A, "1110", "Drawer", "ASSET", parent_id=child.id)

        with pytest.raises(InvalidParentError):
            kernel.update_account(TENANT_A, root.id, AccountPatch(parent_id=grandchild.id))

    def test_reparent_and_detach(self, kernel):
        a = kernel.create_account(TENANT_A, "1000", "Assets", "ASSET")
        b = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        moved = kernel.update_account(TENANT_A, b.id, AccountPatch(parent_id=a.id))
        assert moved.parent.id == a.id

        detached = kernel.update_account(TENANT_A, b.id, AccountPatch(parent_id=None))
        assert detached.parent is None
        assert detached.parent_id is None

    def test_unknown_account(self, kernel):
        with pytest.raises(AccountNotFoundError):
            kernel.update_account(TENANT_A, uuid4(), AccountPatch(name="x"))

    def test_other_tenant_cannot_update(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        with pytest.raises(AccountNotFoundError):
            kernel.update_account(TENANT_B, account.id, AccountPatch(name="Stolen"))


class TestDeleteAccount:
    """Delete guards."""

    def test_delete_unused_account(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        kernel.delete_account(TENANT_A, account.id)

        with pytest.raises(AccountNotFoundError):
            kernel.get_account_by_id(TENANT_A, account.id)

    def test_referenced_account_not_deleted(self, kernel, standard_accounts, post_simple_entry):
        post_simple_entry()

        with pytest.raises(AccountReferencedError) as exc_info:
            kernel.delete_account(TENANT_A, standard_accounts["cash"].id)

        assert exc_info.value.kind == "conflict"
        assert kernel.get_account_by_id(TENANT_A, standard_accounts["cash"].id)

    def test_account_with_children_not_deleted(self, kernel):
        parent = kernel.create_account(TENANT_A, "1000", "Assets", "ASSET")
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET", parent_id=parent.id)

        with pytest.raises(AccountHasChildrenError) as exc_info:
            kernel.delete_account(TENANT_A, parent.id)
        assert exc_info.value.child_count == 1

    def test_code_reusable_after_delete(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        kernel.delete_account(TENANT_A, account.id)

        again = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        assert again.id != account.id

    def test_other_tenant_cannot_delete(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        with pytest.raises(AccountNotFoundError):
            kernel.delete_account(TENANT_B, account.id)

    def test_malformed_id_is_not_found(self, kernel):
        with pytest.raises(AccountNotFoundError):
            kernel.delete_account(TENANT_A, "not-a-uuid")


class TestAccountQueries:
    """get_account_by_id and list_accounts."""

    def test_detail_includes_recent_lines(self, kernel, standard_accounts, post_simple_entry):
        entry = post_simple_entry("42.50")

        detail = kernel.get_account_by_id(TENANT_A, standard_accounts["cash"].id)

        assert detail.account.journal_line_count == 1
        assert len(detail.recent_lines) == 1
        usage = detail.recent_lines[0]
        assert usage.entry_number == entry.entry_number
        assert usage.debit == Decimal("42.50")
        assert usage.credit == Decimal("0")
        assert usage.is_posted is False

    def test_recent_lines_capped_at_ten(self, kernel, standard_accounts, post_simple_entry):
        for _ in range(12):
            post_simple_entry("1.00")

        detail = kernel.get_account_by_id(TENANT_A, standard_accounts["cash"].id)

        assert detail.account.journal_line_count == 12
        assert len(detail.recent_lines) == 10

    def test_list_ordered_by_code(self, kernel):
        for code in ("3000", "1000", "2000"):
            kernel.create_account(TENANT_A, code, f"Account {code}", "ASSET")

        page = kernel.list_accounts(TENANT_A)

        assert [a.code for a in page.items] == ["1000", "2000", "3000"]
        assert page.total == 3
        assert page.pages == 1

    def test_list_filters(self, kernel):
        cash = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        kernel.create_account(TENANT_A, "1110", "Cash drawer", "ASSET", parent_id=cash.id)
        sales = kernel.create_account(TENANT_A, "4000", "Sales", "REVENUE")
        kernel.update_account(TENANT_A, sales.id, AccountPatch(is_active=False))

        by_search = kernel.list_accounts(TENANT_A, AccountFilters(search="cash"))
        assert [a.code for a in by_search.items] == ["1100", "1110"]

        by_type = kernel.list_accounts(TENANT_A, AccountFilters(account_type="REVENUE"))
        assert [a.code for a in by_type.items] == ["4000"]

        inactive = kernel.list_accounts(TENANT_A, AccountFilters(is_active=False))
        assert [a.code for a in inactive.items] == ["4000"]

        children = kernel.list_accounts(TENANT_A, AccountFilters(parent_id=cash.id))
        assert [a.code for a in children.items] == ["1110"]

    def test_search_matches_literal_percent(self, kernel):
        kernel.create_account(TENANT_A, "1100", "100% owned", "ASSET")
        kernel.create_account(TENANT_A, "1200", "Other", "ASSET")

        page = kernel.list_accounts(TENANT_A, AccountFilters(search="%"))

        assert [a.code for a in page.items] == ["1100"]

    def test_search_must_be_text(self, kernel):
        with pytest.raises(InvalidFieldError) as exc_info:
            kernel.list_accounts(TENANT_A, AccountFilters(search=123))
        assert exc_info.value.field == "search"

    def test_pagination(self, kernel):
        for i in range(25):
            kernel.create_account(TENANT_A, f"{1000 + i}", f"Account {i}", "ASSET")

        first = kernel.list_accounts(TENANT_A)
        last = kernel.list_accounts(TENANT_A, page=3)

        assert first.limit == 10
        assert first.total == 25
        assert first.pages == 3
        assert len(first.items) == 10
        assert [a.code for a in last.items] == ["1020", "1021", "1022", "1023", "1024"]

    def test_page_past_end_is_empty(self, kernel):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        page = kernel.list_accounts(TENANT_A, page=5)

        assert page.items == ()
        assert page.total == 1

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
    def test_invalid_pagination(self, kernel, page, limit):
        with pytest.raises(InvalidPaginationError):
            kernel.list_accounts(TENANT_A, page=page, limit=limit)

    def test_list_is_tenant_scoped(self, kernel):
        kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")
        kernel.create_account(TENANT_B, "1200", "Bank", "ASSET")

        assert [a.code for a in kernel.list_accounts(TENANT_A).items] == ["1100"]
        assert [a.code for a in kernel.list_accounts(TENANT_B).items] == ["1200"]

    def test_line_count_in_list(self, kernel, standard_accounts, post_simple_entry):
        post_simple_entry()
        post_simple_entry()

        page = kernel.list_accounts(TENANT_A, AccountFilters(search="Cash"))

        assert page.items[0].journal_line_count == 2

    def test_get_from_other_tenant_is_not_found(self, kernel):
        account = kernel.create_account(TENANT_A, "1100", "Cash", "ASSET")

        with pytest.raises(AccountNotFoundError):
            kernel.get_account_by_id(TENANT_B, account.id)


class TestInactiveAccountsInEntries:
    """Inactive accounts stay readable but reject new lines."""

    def test_inactive_account_rejected_in_entry(self, kernel, standard_accounts):
        from ledger_kernel.exceptions import InvalidAccountError

        kernel.update_account(
            TENANT_A, standard_accounts["cash"].id, AccountPatch(is_active=False)
        )

        with pytest.raises(InvalidAccountError) as exc_info:
            kernel.create_journal_entry(
                TENANT_A,
                TODAY,
                "Sale",
                [
                    JournalLineInput(account_id=standard_accounts["cash"].id, debit="10.00"),
                    JournalLineInput(account_id=standard_accounts["revenue"].id, credit="10.00"),
                ],
            )
        assert exc_info.value.reason == "inactive"
