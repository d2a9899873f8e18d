"""
NumberingService -- per-tenant document numbers via locked counter rows.

Responsibility:
    Allocates strictly increasing values per (tenant_id, sequence_name) and
    formats them as document numbers (JE-000001, CN-000001, DN-000001).
    The same counters give each invoice its payment ordinals, which is how
    concurrent payments to one invoice are serialized.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Session-scoped: constructed inside a caller's transaction by
    LedgerEngine and BillingLedger.

Invariants enforced:
    - The counter row is the sole source of the next value.  Counting rows
      or taking MAX()+1 over existing documents is never done.
    - Transactional: an allocation becomes visible only when the caller's
      transaction commits; a rollback hands the value back.

Failure modes:
    - IntegrityError on a concurrent first-use insert of the same counter,
      recovered via savepoint rollback and a locked re-read.
    - ConcurrentModificationError (raised by the transaction scope) if the
      database gives up waiting for the row lock.
"""

from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.numbering")


class DocumentType(str, Enum):
    """Documents that carry a human-readable number."""

    JOURNAL_ENTRY = "JOURNAL_ENTRY"
    CREDIT_NOTE = "CREDIT_NOTE"
    DEBIT_NOTE = "DEBIT_NOTE"


def payment_sequence_name(invoice_id: str) -> str:
    """Counter that numbers the payments of one invoice."""
    return f"PAYMENT:{invoice_id}"


class NumberingService:
    """
    Allocates sequence values inside the caller's transaction.

    Contract:
        Never calls ``session.commit()``; the caller's transaction scope
        decides whether an allocation is kept.

    Guarantees:
        - Strictly increasing values per (tenant_id, sequence_name).
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations for
          the same counter; on SQLite the BEGIN IMMEDIATE transaction
          already holds the database write lock.

    Usage:
        with database.transaction("create_journal_entry") as session:
            number = NumberingService(session).next(tenant_id, DocumentType.JOURNAL_ENTRY)
    """

    def __init__(self, session: Session, policy: LedgerPolicy | None = None):
        self._session = session
        self._policy = policy or LedgerPolicy()

    def _lock_counter(self, tenant_id: str, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(
                SequenceCounter.tenant_id == tenant_id,
                SequenceCounter.name == sequence_name,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, tenant_id: str, sequence_name: str) -> int:
        """
        Allocate the next value of a per-tenant counter.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously committed for (tenant_id, sequence_name).
            - The counter row stays locked until the transaction ends.
        """
        counter = self._lock_counter(tenant_id, sequence_name)

        if counter is None:
            # First use. Another transaction may insert the same row
            # concurrently, so the insert runs in a savepoint.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    tenant_id=tenant_id, name=sequence_name, current_value=1
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"tenant_id": tenant_id, "sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"tenant_id": tenant_id, "sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(tenant_id, sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={
                "tenant_id": tenant_id,
                "sequence_name": sequence_name,
                "value": counter.current_value,
            },
        )
        return counter.current_value

    def next(self, tenant_id: str, document_type: DocumentType) -> str:
        """
        Allocate the next document number, e.g. ``JE-000042``.

        Values past the padding width simply grow (JE-1000000).
        """
        document_type = DocumentType(document_type)
        value = self.next_value(tenant_id, document_type.value)
        prefix = self._policy.number_prefixes[document_type.value]
        width = self._policy.number_padding
        return f"{prefix}-{value:0{width}d}"

    def current_value(self, tenant_id: str, sequence_name: str) -> int | None:
        """Current value of a counter without incrementing; None if unused."""
        counter = self._session.execute(
            select(SequenceCounter).where(
                SequenceCounter.tenant_id == tenant_id,
                SequenceCounter.name == sequence_name,
            )
        ).scalar_one_or_none()
        return counter.current_value if counter else None
