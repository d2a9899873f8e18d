"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the per-tenant Chart of Accounts -- the
    target of every journal line.
Architecture position: Kernel > Models.  May import from db/ and the domain
    enums only.

Invariants enforced:
    - Account code is unique within a tenant (uq_account_tenant_code).
    - normal_balance is always the one implied by account_type.
    - account_type cannot change once journal lines reference the account
      (enforced by AccountRegistry, not this model).

Failure modes:
    - IntegrityError on a duplicate (tenant_id, code), translated to
      DuplicateAccountCodeError by AccountRegistry.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScoped, UUIDString
from ledger_kernel.domain.dtos import AccountType, NormalBalance

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalEntryLine


class Account(TenantScoped):
    """
    Chart of Accounts entry -- a single node in one tenant's account tree.

    Contract:
        (tenant_id, code) is unique.  parent_id, when set, names an account
        of the same tenant and never one of this account's descendants.

    Non-goals:
        - Does not store balances; balances are derived from journal lines.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_type", "tenant_id", "account_type"),
        Index("idx_account_tenant_active", "tenant_id", "is_active"),
    )

    # Human-readable account code, e.g. "1100"
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Determines financial statement placement
    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    # Derived from account_type on every write
    normal_balance: Mapped[NormalBalance] = mapped_column(
        String(10),
        nullable=False,
    )

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
    )

    # Whether the account accepts new journal lines
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    parent: Mapped["Account | None"] = relationship(
        remote_side="Account.id",
        back_populates="children",
    )

    children: Mapped[list["Account"]] = relationship(
        back_populates="parent",
        order_by="Account.code",
    )

    journal_lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.tenant_id}/{self.code}: {self.name}>"

    def set_type(self, account_type: AccountType) -> None:
        """Set account_type and keep normal_balance consistent with it."""
        account_type = AccountType(account_type)
        self.account_type = account_type.value
        self.normal_balance = account_type.normal_balance.value
