"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, type annotation map for consistent column
    types, the TrackedBase mixin for audit timestamps and the TenantScoped
    mixin that partitions every row by tenant.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys: Every model inherits a uuid4-generated primary key.
    - Decimal precision: type_annotation_map maps Python Decimal to MoneyType,
      which is Numeric(38, 9) on PostgreSQL and an exact decimal string on
      SQLite.  NEVER use float for monetary amounts.
    - Tenant partition: every TenantScoped row carries a non-null tenant_id
      and every query in services/selectors filters on it.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ledger_kernel.db.types import MoneyType

TENANT_ID_LENGTH = 64


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to MoneyType -- financial-grade precision.
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger -- safe for monotonic sequences.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: MoneyType(),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at auto-updates on every UPDATE.
        - created_by_id records the acting user when the caller supplies one.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


class TenantScoped(TrackedBase):
    """
    Abstract base for rows owned by exactly one tenant.

    Contract:
        tenant_id is supplied by the external tenant context and never
        inferred by the kernel.  Rows are only ever referenced from within
        the same tenant's partition.
    """

    __abstract__ = True

    tenant_id: Mapped[str] = mapped_column(
        String(TENANT_ID_LENGTH),
        nullable=False,
        index=True,
    )


def coerce_uuid(value: PyUUID | str | None) -> PyUUID | None:
    """Coerce a caller-supplied id to UUID; None if it cannot be one."""
    if value is None or isinstance(value, PyUUID):
        return value
    try:
        return PyUUID(str(value))
    except ValueError:
        return None


def column_length(attribute) -> int | None:
    """Declared width of a mapped string column; None when unbounded."""
    return getattr(attribute.expression.type, "length", None)


# Re-export UUID for convenience
UUID = PyUUID
