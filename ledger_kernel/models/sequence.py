"""
Module: ledger_kernel.models.sequence
Responsibility: Counter rows backing NumberingService.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (tenant_id, name); the unique constraint turns a
      concurrent first-use insert into an IntegrityError that
      NumberingService recovers from.
    - current_value only ever grows.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TENANT_ID_LENGTH, Base


class SequenceCounter(Base):
    """
    Named per-tenant counter.

    Row-level locking on this row is what serializes allocation, and also
    what serializes payments against the same invoice.
    """

    __tablename__ = "sequence_counters"

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_sequence_tenant_name"),
    )

    tenant_id: Mapped[str] = mapped_column(
        String(TENANT_ID_LENGTH),
        nullable=False,
    )

    # "JOURNAL_ENTRY", "CREDIT_NOTE", "PAYMENT:<invoice_id>", ...
    name: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    current_value: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.tenant_id}/{self.name}={self.current_value}>"
