"""
AccountRegistry -- per-tenant chart of accounts.

Responsibility:
    Creates, updates and deletes accounts and answers account queries, all
    confined to one tenant's partition.

Architecture position:
    Kernel > Services -- imperative shell.  Reads go through
    AccountSelector; writes go through the Account model inside one
    ``database.transaction()`` per call.

Invariants enforced:
    - Account code is unique within a tenant.  The pre-check gives a clean
      error; the (tenant_id, code) unique constraint catches the race where
      two transactions insert the same code concurrently.
    - The account tree stays acyclic: a parent is never the account itself
      or one of its descendants.
    - An account referenced by journal lines is never deleted and never
      changes account_type.
    - An account with children is never deleted.

Failure modes:
    - InvalidFieldError: blank code/name, unknown account_type.
    - DuplicateAccountCodeError: code already used in the tenant.
    - AccountNotFoundError / ParentAccountNotFoundError.
    - InvalidParentError: cyclic parent assignment.
    - AccountReferencedError / AccountHasChildrenError: deletion guards.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.base import coerce_uuid, column_length
from ledger_kernel.domain.dtos import AccountDetail, AccountInfo, AccountType, Page
from ledger_kernel.domain.filters import AccountFilters, AccountPatch
from ledger_kernel.domain.validation import (
    coerce_enum,
    optional_text,
    require_bool,
    require_text,
)
from ledger_kernel.exceptions import (
    AccountHasChildrenError,
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountCodeError,
    InvalidParentError,
    ParentAccountNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntryLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.accounts")


class AccountRegistry(BaseService):
    """
    Chart-of-accounts commands and queries.

    Guarantees:
        - Every call is one transaction; a rejected call writes nothing.
        - normal_balance always follows account_type.
    """

    logger = logger

    # -- Lookups (inside a caller's session) --------------------------------

    @staticmethod
    def _load(
        session: Session,
        tenant_id: str,
        account_id: UUID | str,
        lock: bool = False,
    ) -> Account | None:
        account_uuid = coerce_uuid(account_id)
        if account_uuid is None:
            return None
        stmt = select(Account).where(
            Account.tenant_id == tenant_id, Account.id == account_uuid
        )
        if lock:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _code_taken(session: Session, tenant_id: str, code: str) -> bool:
        return (
            session.execute(
                select(Account.id).where(
                    Account.tenant_id == tenant_id, Account.code == code
                )
            ).first()
            is not None
        )

    @staticmethod
    def _line_count(session: Session, tenant_id: str, account_id: UUID) -> int:
        return session.execute(
            select(func.count(JournalEntryLine.id)).where(
                JournalEntryLine.tenant_id == tenant_id,
                JournalEntryLine.account_id == account_id,
            )
        ).scalar_one()

    @staticmethod
    def _child_count(session: Session, tenant_id: str, account_id: UUID) -> int:
        return session.execute(
            select(func.count(Account.id)).where(
                Account.tenant_id == tenant_id,
                Account.parent_id == account_id,
            )
        ).scalar_one()

    def _would_cycle(
        self, session: Session, tenant_id: str, account_id: UUID, parent: Account
    ) -> bool:
        """True if ``parent`` is the account itself or one of its descendants."""
        seen: set[UUID] = set()
        current: Account | None = parent
        while current is not None and current.id not in seen:
            if current.id == account_id:
                return True
            seen.add(current.id)
            if current.parent_id is None:
                break
            current = self._load(session, tenant_id, current.parent_id)
        return False

    def _flush_unique(self, session: Session, code: str) -> None:
        try:
            session.flush()
        except IntegrityError:
            raise DuplicateAccountCodeError(code) from None

    # -- Commands -----------------------------------------------------------

    def create_account(
        self,
        tenant_id: str,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: UUID | str | None = None,
        description: str | None = None,
        is_active: bool = True,
        actor_id: UUID | str | None = None,
    ) -> AccountInfo:
        """
        Add an account to the tenant's chart.

        Preconditions:
            code and name are non-blank; account_type is one of the five
            AccountType values.

        Postconditions:
            The account exists with normal_balance derived from its type.

        Raises:
            InvalidFieldError, DuplicateAccountCodeError,
            ParentAccountNotFoundError.
        """
        with self.guarded("account_rejected", tenant_id, actor_id, operation="create_account"):
            code = require_text(code, "code", column_length(Account.code))
            name = require_text(name, "name", column_length(Account.name))
            account_type = coerce_enum(AccountType, account_type, "account_type")
            description = optional_text(description, "description")
            is_active = require_bool(is_active, "is_active")

            with self.database.transaction("create_account") as session:
                if self._code_taken(session, tenant_id, code):
                    raise DuplicateAccountCodeError(code)

                parent = None
                if parent_id is not None:
                    parent = self._load(session, tenant_id, parent_id)
                    if parent is None:
                        raise ParentAccountNotFoundError(str(parent_id))

                account = Account(
                    tenant_id=tenant_id,
                    code=code,
                    name=name,
                    description=description,
                    parent_id=parent.id if parent is not None else None,
                    is_active=is_active,
                    created_by_id=coerce_uuid(actor_id),
                )
                account.set_type(account_type)
                session.add(account)
                self._flush_unique(session, code)

                info = AccountSelector(session, self.policy).get_info(tenant_id, account.id)

        logger.info(
            "account_created",
            extra={
                "account_id": str(info.id),
                "account_code": info.code,
                "account_type": info.account_type.value,
            },
        )
        return info

    def update_account(
        self,
        tenant_id: str,
        account_id: UUID | str,
        patch: AccountPatch,
        actor_id: UUID | str | None = None,
    ) -> AccountInfo:
        """
        Apply the fields set on ``patch``.

        Code uniqueness is re-checked only when the code actually changes.

        Raises:
            AccountNotFoundError, InvalidFieldError, DuplicateAccountCodeError,
            ParentAccountNotFoundError, InvalidParentError,
            AccountReferencedError (type change on a referenced account).
        """
        with self.guarded(
            "account_rejected", tenant_id, actor_id, operation="update_account"
        ):
            changes: dict[str, Any] = patch.changes()

            with self.database.transaction("update_account") as session:
                account = self._load(session, tenant_id, account_id, lock=True)
                if account is None:
                    raise AccountNotFoundError(str(account_id))

                if "code" in changes:
                    code = require_text(changes["code"], "code", column_length(Account.code))
                    if code != account.code:
                        if self._code_taken(session, tenant_id, code):
                            raise DuplicateAccountCodeError(code)
                        account.code = code

                if "name" in changes:
                    account.name = require_text(
                        changes["name"], "name", column_length(Account.name)
                    )

                if "description" in changes:
                    account.description = optional_text(
                        changes["description"], "description"
                    )

                if "account_type" in changes:
                    new_type = coerce_enum(
                        AccountType, changes["account_type"], "account_type"
                    )
                    if new_type.value != account.account_type:
                        line_count = self._line_count(session, tenant_id, account.id)
                        if line_count:
                            raise AccountReferencedError(
                                str(account.id), line_count, operation="change type of"
                            )
                        account.set_type(new_type)

                if "parent_id" in changes:
                    new_parent_id = changes["parent_id"]
                    if new_parent_id is None:
                        account.parent_id = None
                    else:
                        parent = self._load(session, tenant_id, new_parent_id)
                        if parent is None:
                            raise ParentAccountNotFoundError(str(new_parent_id))
                        if self._would_cycle(session, tenant_id, account.id, parent):
                            raise InvalidParentError(str(account.id), str(parent.id))
                        account.parent_id = parent.id

                if "is_active" in changes:
                    account.is_active = require_bool(changes["is_active"], "is_active")

                account.updated_by_id = coerce_uuid(actor_id)
                self._flush_unique(session, account.code)
                # parent/children relationships may be stale after the update
                session.expire(account)

                info = AccountSelector(session, self.policy).get_info(tenant_id, account.id)

        logger.info(
            "account_updated",
            extra={
                "account_id": str(info.id),
                "account_code": info.code,
                "changed_fields": sorted(changes),
            },
        )
        return info

    def delete_account(
        self,
        tenant_id: str,
        account_id: UUID | str,
        actor_id: UUID | str | None = None,
    ) -> None:
        """
        Remove an account that nothing depends on.

        Raises:
            AccountNotFoundError, AccountReferencedError,
            AccountHasChildrenError.
        """
        with self.guarded(
            "account_rejected", tenant_id, actor_id, operation="delete_account"
        ):
            with self.database.transaction("delete_account") as session:
                account = self._load(session, tenant_id, account_id, lock=True)
                if account is None:
                    raise AccountNotFoundError(str(account_id))

                line_count = self._line_count(session, tenant_id, account.id)
                if line_count:
                    raise AccountReferencedError(str(account.id), line_count)

                child_count = self._child_count(session, tenant_id, account.id)
                if child_count:
                    raise AccountHasChildrenError(str(account.id), child_count)

                code = account.code
                session.delete(account)
                session.flush()

        logger.info(
            "account_deleted",
            extra={"account_id": str(account_id), "account_code": code},
        )

    # -- Queries ------------------------------------------------------------

    def get_account_by_id(self, tenant_id: str, account_id: UUID | str) -> AccountDetail:
        """Account with parent, children, line count and its 10 latest lines."""
        with self.database.transaction("get_account_by_id") as session:
            detail = AccountSelector(session, self.policy).get_detail(tenant_id, account_id)
        if detail is None:
            raise AccountNotFoundError(str(account_id))
        return detail

    def list_accounts(
        self,
        tenant_id: str,
        filters: AccountFilters | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> Page[AccountInfo]:
        with self.database.transaction("list_accounts") as session:
            return AccountSelector(session, self.policy).list_accounts(
                tenant_id, filters, page, limit
            )
