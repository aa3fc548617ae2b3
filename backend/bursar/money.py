# Overview: Fixed-point money handling; Decimal at the boundary, integer cents in storage.

"""
Money values in bursar are always decimal.Decimal with two places.

WHY: Balances are compared against zero and summed across many payments.
Binary floats drift; Decimal and integer cents do not.

STORAGE: The Money column type persists integer minor units (cents), the same
way the rest of the schema stores counters. Arithmetic done by the database
(SUM, comparisons) therefore stays exact on every backend.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy.types import BigInteger, TypeDecorator

from .validation import ValidationError


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# 999,999,999,999.99 - anything beyond is a data entry mistake
MAX_AMOUNT = Decimal("999999999999.99")


class Money(TypeDecorator):
    """Decimal amount persisted as integer cents."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int((Decimal(value) * 100).quantize(Decimal("1")))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) / 100).quantize(CENT)


def to_money(value, field: str = "amount", *, allow_zero: bool = True) -> Decimal:
    """
    Parse client input into a money Decimal.

    Accepts Decimal, int, or a numeric string. Rejects floats (already
    approximated), booleans, non-finite values, negatives, and sub-cent
    precision.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be sent as a decimal string, not a float")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            amount = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field} must be positive")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} cannot have more than two decimal places")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum allowed ({MAX_AMOUNT})")

    return amount.quantize(CENT)


def optional_money(value, field: str = "amount") -> Decimal | None:
    if value is None:
        return None
    return to_money(value, field)


def clamp_zero(value: Decimal) -> Decimal:
    """Floor an amount at zero."""
    return value if value > ZERO else ZERO


def money_str(value: Decimal | None) -> str | None:
    """Serialize for JSON without going through float."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT))
