"""Fixed-point money helpers shared by the ordering and payments contexts.

All monetary values travel through the code as ``decimal.Decimal`` quantized
to two places and are persisted as integer minor units (cents). Binary
floating point never enters the monetary path: ``to_money`` refuses floats
and anything that is not already a number.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MINOR_UNITS_PER_UNIT = 100


def quantize(amount: Decimal) -> Decimal:
    """Round a Decimal half-up to whole cents."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value) -> Decimal:
    """Convert an explicit numeric value (Decimal, int or numeric string) to money.

    Floats are rejected: ``0.1 + 0.2`` style drift is exactly what this module
    exists to prevent.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary values must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    else:
        raise TypeError(f"Monetary values must be Decimal, int or str, not {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return quantize(amount)


def to_minor_units(amount: Decimal) -> int:
    """Express an amount in integer cents."""
    return int(quantize(amount) * MINOR_UNITS_PER_UNIT)


def from_minor_units(minor: int) -> Decimal:
    return quantize(Decimal(minor) / MINOR_UNITS_PER_UNIT)


class Money(TypeDecorator):
    """Column type storing a Decimal amount as integer minor units."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_minor_units(to_money(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_minor_units(value)


RATE_PLACES = Decimal("0.0001")
RATE_UNITS_PER_UNIT = 10_000


class Rate(TypeDecorator):
    """Column type for a Decimal kept to four places, stored as an integer.

    Used where a value may be a percentage rate rather than an amount, so
    ``12.345`` survives the round trip instead of rounding to cents.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, (bool, float)):
            raise TypeError(f"Rates must be Decimal, int or str, not {type(value).__name__}")
        return int(Decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP) * RATE_UNITS_PER_UNIT)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(value) / RATE_UNITS_PER_UNIT).quantize(RATE_PLACES)
