from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


# Largest amount accepted on any money field: $9,999,999,999.99
MAX_AMOUNT = Decimal("9999999999.99")
CENTS = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce client input into a two-decimal Decimal.

    Floats go through str() so 0.1 stays 0.1. Booleans are rejected even
    though they are ints.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
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
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    return amount.quantize(CENTS)


def parse_amount(value: Any, field: str, *, allow_zero: bool = True) -> Decimal:
    """Non-negative amount; strictly positive when allow_zero is False."""
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def parse_quantity(value: Any, field: str = "quantity") -> int:
    # Integers only; "2" is accepted, 2.5 and "1e3" are not
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        qty = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer")
    if qty <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return qty


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value
