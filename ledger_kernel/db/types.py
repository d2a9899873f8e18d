"""
Module: ledger_kernel.db.types
Responsibility: Column types and rounding utilities for financial-grade
    amounts.  Centralizes precision so that every model and service uses
    identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in storage.  PostgreSQL stores amounts as
        NUMERIC(38, 9); SQLite has no exact decimal type, so amounts are
        stored there as their canonical decimal string.
    round_money() is the ONLY sanctioned rounding function for financial
        values.
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

# Storage precision: 38 digits total, 9 decimal places
STORAGE_PRECISION = 38
STORAGE_SCALE = 9

# Currency unit precision used when validating and presenting amounts
MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


class MoneyType(TypeDecorator):
    """
    Exact decimal amount, portable across PostgreSQL and SQLite.

    Guarantees:
        - Values always come back as ``Decimal``.
        - On SQLite the value is stored as a plain decimal string, so no
          binary floating point conversion ever happens.
    """

    impl = Numeric(STORAGE_PRECISION, STORAGE_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(
            Numeric(STORAGE_PRECISION, STORAGE_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value)
        if dialect.name == "sqlite":
            return format(value, "f")
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for financial values in
    the kernel.

    Example:
        round_money(Decimal("10.555"), 2) -> Decimal("10.56")
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
