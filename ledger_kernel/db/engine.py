"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine construction and the transactional scope
    used by every kernel operation.  ``LedgerDatabase`` is the explicit
    connection handle: it is built once by the composition root and injected
    into each component.  There is no module-level engine.
Architecture position: Kernel > DB.  May import from db/base.py and the
    logging config.  MUST NOT import from services/, selectors/, domain/, or
    outer layers (except for create_tables/drop_tables, which import models).

Invariants enforced:
    - One operation, one transaction: ``transaction()`` commits on normal
      exit and rolls back on any exception, so a header and its lines are
      written together or not at all.
    - PostgreSQL runs at READ COMMITTED with explicit row-level locking
      (``SELECT ... FOR UPDATE``) on counter rows and entries being posted.
    - SQLite opens every transaction with ``BEGIN IMMEDIATE`` so that writers
      serialize on the database lock, and enables foreign keys on connect.

Failure modes:
    - ConcurrentModificationError when the database reports a deadlock,
      serialization failure or lock timeout.  Never retried here.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

import threading
from contextlib import contextmanager, nullcontext
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.exceptions import ConcurrentModificationError, LedgerKernelError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# SQLSTATE codes PostgreSQL uses for lock conflicts
_PG_CONFLICT_CODES = frozenset({"40001", "40P01", "55P03"})

_SQLITE_MEMORY_NAMES = (None, "", ":memory:")


def _is_lock_conflict(exc: DBAPIError) -> bool:
    """True if the driver error means another transaction got in the way."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _PG_CONFLICT_CODES:
        return True
    return "database is locked" in str(exc.orig).lower()


def _is_sqlite_memory(engine: Engine) -> bool:
    return engine.dialect.name == "sqlite" and engine.url.database in _SQLITE_MEMORY_NAMES


def _install_sqlite_locking(engine: Engine) -> None:
    """Make SQLite transactions take the write lock up front."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy so BEGIN IMMEDIATE is ours
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class LedgerDatabase:
    """
    Connection handle shared by all kernel components.

    Contract:
        Components never create engines or sessions on their own; they call
        ``transaction()`` on the handle they were constructed with.

    Guarantees:
        - ``transaction()`` yields a fresh session, commits on success,
          rolls back on failure and always closes the session.
        - Driver lock conflicts are re-raised as ConcurrentModificationError.
        - On an in-memory SQLite handle, transactions from different threads
          run one after another.

    Non-goals:
        - No automatic retry of failed transactions.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        # An in-memory SQLite database lives on one shared connection, so
        # transactions on it must not overlap.
        self._memory_lock = threading.RLock() if _is_sqlite_memory(engine) else None

    @classmethod
    def from_url(
        cls,
        database_url: str,
        echo: bool = False,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        sqlite_busy_timeout: float = 30.0,
    ) -> "LedgerDatabase":
        """
        Build a handle from a database URL.

        Args:
            database_url: PostgreSQL or SQLite SQLAlchemy URL.
            echo: If True, log all SQL statements.
            pool_size: Number of connections to keep in the pool (PostgreSQL).
            max_overflow: Max connections beyond pool_size (PostgreSQL).
            pool_pre_ping: If True, test connections before use.
            pool_timeout: Seconds to wait for a pooled connection.
            pool_recycle: Seconds after which a connection is recycled.
            sqlite_busy_timeout: Seconds a SQLite writer waits for the lock.

        Returns:
            A ready-to-use LedgerDatabase.
        """
        url = make_url(database_url)
        dialect = url.get_backend_name()

        if dialect == "sqlite":
            engine = create_engine(
                url,
                echo=echo,
                poolclass=StaticPool if url.database in _SQLITE_MEMORY_NAMES else QueuePool,
                connect_args={
                    "check_same_thread": False,
                    "timeout": sqlite_busy_timeout,
                },
            )
            _install_sqlite_locking(engine)
        else:
            engine = create_engine(
                url,
                echo=echo,
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                isolation_level="READ COMMITTED",
            )

        logger.info(
            "engine_initialized",
            extra={
                "dialect": dialect,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "echo": echo,
            },
        )
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def session_factory(self) -> sessionmaker[Session]:
        """Session factory bound to this handle's engine."""
        return self._session_factory

    @contextmanager
    def transaction(self, operation: str = "unnamed") -> Generator[Session, None, None]:
        """
        Provide one atomically-committed unit of work.

        Postconditions: On normal exit, session is committed and closed.
            On exception, session is rolled back and closed and the
            exception is re-raised (lock conflicts as
            ConcurrentModificationError).

        Usage:
            with database.transaction("create_payment") as session:
                session.add(entity)
        """
        with self._memory_lock or nullcontext():
            session = self._session_factory()
            logger.debug("transaction_started", extra={"operation": operation})
            try:
                yield session
                session.commit()
                logger.debug("transaction_committed", extra={"operation": operation})
            except LedgerKernelError as exc:
                session.rollback()
                logger.debug(
                    "transaction_rolled_back",
                    extra={"operation": operation, "error_code": exc.code},
                )
                raise
            except DBAPIError as exc:
                session.rollback()
                if _is_lock_conflict(exc):
                    logger.warning(
                        "transaction_lock_conflict",
                        extra={"operation": operation},
                    )
                    raise ConcurrentModificationError(operation, str(exc.orig)) from exc
                logger.warning(
                    "transaction_rolled_back",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise
            except Exception:
                session.rollback()
                logger.warning(
                    "transaction_rolled_back",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise
            finally:
                session.close()

    def create_tables(self) -> None:
        """
        Create all kernel tables.

        Postconditions: Every table registered on Base.metadata exists.
        """
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401  (registers all tables)

        Base.metadata.create_all(self._engine)
        logger.info("tables_created", extra={"dialect": self.dialect_name})

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution - primarily for testing."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.drop_all(self._engine)

    def dispose(self) -> None:
        """Release all pooled connections."""
        self._engine.dispose()
