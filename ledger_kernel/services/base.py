"""
BaseService -- common plumbing for the kernel's public components.

Responsibility:
    Holds the injected LedgerDatabase handle, the runtime LedgerPolicy and
    the Clock, and wraps each operation with tenant log context and
    rejection logging.

Architecture position:
    Kernel > Services -- imperative shell.  AccountRegistry, LedgerEngine
    and BillingLedger extend this class.

Invariants enforced:
    - Every public operation opens exactly one ``database.transaction()``.
      Helpers that receive a session (NumberingService, selectors) only
      flush; commit and rollback belong to the transaction scope.
"""

import logging
from abc import ABC
from contextlib import contextmanager
from typing import Any, Generator

from ledger_kernel.db.base import TENANT_ID_LENGTH
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.domain.validation import require_text
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import LogContext, get_logger


class BaseService(ABC):
    """
    Abstract base class for kernel components.

    Contract:
        Components are constructed once (by LedgerKernel or a test) and are
        safe to share between threads: they keep no per-call state, and
        each call works in its own session.
    """

    logger: logging.Logger = get_logger("services")

    def __init__(
        self,
        database: LedgerDatabase,
        policy: LedgerPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.database = database
        self.policy = policy or LedgerPolicy()
        self.clock = clock or SystemClock()

    @contextmanager
    def guarded(
        self,
        rejected_event: str,
        tenant_id: str,
        actor_id: Any = None,
        operation: str | None = None,
        **fields: Any,
    ) -> Generator[None, None, None]:
        """
        Bind tenant, actor and operation into the log context for one call
        and log any kernel error it raises at WARNING under
        ``rejected_event``.  The tenant id itself is checked here.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, operation=operation):
            try:
                require_text(tenant_id, "tenant_id", TENANT_ID_LENGTH)
                yield
            except LedgerKernelError as exc:
                self.logger.warning(
                    rejected_event,
                    extra={"error_code": exc.code, "error_kind": exc.kind, **fields},
                )
                raise
