# core/money.py
"""Decimal helpers for money and quantities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.errors import ValidationError


MONEY_Q = Decimal("0.01")
QTY_Q = Decimal("0.0001")
RATE_Q = Decimal("0.000001")
ZERO = Decimal("0.00")
MAX_EXCHANGE_RATE = Decimal("1000000000000")


def to_decimal(value, field: str = "amount") -> Decimal:
    """Convert input to a finite Decimal. None and "" become zero."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid decimal value for {field}.")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"Invalid decimal value for {field}.")
    if not result.is_finite():
        raise ValidationError(f"Invalid decimal value for {field}.")
    return result


def _quantize(value, exponent: Decimal, field: str) -> Decimal:
    try:
        return to_decimal(value, field).quantize(exponent, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Decimal value for {field} is out of range.")


def money(value) -> Decimal:
    return _quantize(value, MONEY_Q, "amount")


def qty(value) -> Decimal:
    return _quantize(value, QTY_Q, "quantity")


def rate(value) -> Decimal:
    return _quantize(value, RATE_Q, "exchange_rate")
