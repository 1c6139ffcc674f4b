from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

from .errors import ValidationError


# DECIMAL(10, 2) upper bound: 99,999,999.99
MAX_AMOUNT = Decimal("99999999.99")
CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, field: str) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required")

    # bool is an int subclass; reject explicitly
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # via str() so 0.1 stays 0.1 instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain number (scientific notation not allowed)")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if result.as_tuple().exponent < -2:
        raise ValidationError(f"{field} allows at most 2 decimal places")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds the maximum of {MAX_AMOUNT}")
    return result


def ensure_within_bounds(value: Decimal, field: str) -> Decimal:
    """Reject a computed quantity or total that would not fit DECIMAL(10, 2)."""
    if abs(value) > MAX_AMOUNT:
        raise ValidationError(
            f"{field} exceeds the maximum of {MAX_AMOUNT}",
            details={field: str(value)},
        )
    return value


def to_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Parse a stock quantity: strictly positive, or >= 0 when allow_zero."""
    qty = _to_decimal(value, field)
    if allow_zero:
        if qty < 0:
            raise ValidationError(f"{field} cannot be negative")
    elif qty <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return qty


def to_amount(value: Any, field: str, *, default: Decimal | None = None) -> Decimal:
    """Parse a non-negative money amount. None falls back to default when one is given."""
    if value is None and default is not None:
        return default
    amount = _to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def to_optional_amount(value: Any, field: str) -> Decimal | None:
    if value is None:
        return None
    return to_amount(value, field)


def require_id(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def require_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    allowed = list(choices)
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {allowed}")
    return value


def require_items(items: Any, field: str = "items") -> list:
    if not items:
        raise ValidationError(f"{field} must contain at least one entry")
    if not isinstance(items, (list, tuple)):
        raise ValidationError(f"{field} must be a list")
    return list(items)


def decimal_to_str(value: Decimal | None) -> str | None:
    """JSON-safe rendering of Numeric columns ("12.50")."""
    if value is None:
        return None
    return str(quantize_money(Decimal(value)))
