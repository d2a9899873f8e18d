"""
Module: ledger_kernel.domain.money
Responsibility: Turn caller-supplied amounts into exact Decimals and check
    them against currency-unit precision.
Architecture position: Kernel > Domain.  Pure functions, no I/O.

Invariants enforced:
    - Amounts are Decimal end to end.  Floats are accepted at the boundary
      only through their shortest ``str`` form, never through binary
      conversion, so ``0.1`` becomes ``Decimal("0.1")``.
    - NaN, infinities and booleans are rejected.
    - An amount never carries digits finer than the currency unit.

Failure modes:
    - InvalidAmountError for anything that is not a finite number, or that
      violates sign or precision requirements.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable

from ledger_kernel.db.types import MONEY_DECIMAL_PLACES
from ledger_kernel.exceptions import InvalidAmountError

ZERO = Decimal("0")

AmountLike = Decimal | int | float | str


def to_amount(value: AmountLike, field: str) -> Decimal:
    """
    Convert a caller-supplied amount to an exact Decimal.

    Raises:
        InvalidAmountError: value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(field, repr(value), "not a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(field, repr(value), "not a number") from None
    else:
        raise InvalidAmountError(field, repr(value), "not a number")

    if not amount.is_finite():
        raise InvalidAmountError(field, str(value), "must be finite")
    return amount


def has_unit_precision(amount: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> bool:
    """True if ``amount`` has no digits beyond ``decimal_places``."""
    quantum = Decimal(10) ** -decimal_places
    return amount == amount.quantize(quantum)


def require_unit_precision(
    amount: Decimal,
    field: str,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    if not has_unit_precision(amount, decimal_places):
        raise InvalidAmountError(
            field,
            str(amount),
            f"more than {decimal_places} decimal places",
        )
    return amount


def positive_amount(
    value: AmountLike,
    field: str,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    """Parse an amount that must be > 0 at currency-unit precision."""
    amount = to_amount(value, field)
    if amount <= ZERO:
        raise InvalidAmountError(field, str(amount), "must be positive")
    return require_unit_precision(amount, field, decimal_places)


def sum_amounts(values: Iterable[Decimal]) -> Decimal:
    """Exact Decimal sum; ``ZERO`` for an empty iterable."""
    return sum(values, ZERO)
