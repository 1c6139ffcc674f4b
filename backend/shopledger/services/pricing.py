# Overview: Line and document totals shared by sales and quotations.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import ValidationError
from ..validation import ensure_within_bounds, quantize_money, to_amount, to_quantity


ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PricedLine:
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def price_line(quantity, unit_price, discount=None, *, label: str = "item") -> PricedLine:
    """
    total_price = quantity * unit_price - discount, rounded half-up to cents.

    Raises:
        ValidationError: Bad numbers, a discount larger than the line value,
            or a line total beyond DECIMAL(10, 2)
    """
    qty = to_quantity(quantity, f"{label}.quantity")
    price = to_amount(unit_price, f"{label}.unit_price")
    line_discount = to_amount(discount, f"{label}.discount", default=ZERO)

    total = ensure_within_bounds(quantize_money(qty * price - line_discount), f"{label}.total_price")
    if total < 0:
        raise ValidationError(f"{label} discount exceeds the line value")
    return PricedLine(quantity=qty, unit_price=price, discount=line_discount, total_price=total)


def document_totals(lines: list[PricedLine], tax_amount, discount_amount) -> DocumentTotals:
    """
    subtotal = sum(line totals); total = subtotal + tax - discount.

    Raises:
        ValidationError: The resulting total is negative or beyond DECIMAL(10, 2)
    """
    subtotal = ensure_within_bounds(quantize_money(sum((line.total_price for line in lines), ZERO)), "subtotal")
    tax = quantize_money(to_amount(tax_amount, "tax_amount", default=ZERO))
    discount = quantize_money(to_amount(discount_amount, "discount_amount", default=ZERO))

    total = ensure_within_bounds(quantize_money(subtotal + tax - discount), "total_amount")
    if total < 0:
        raise ValidationError(
            "Total amount cannot be negative",
            details={"subtotal": str(subtotal), "tax_amount": str(tax), "discount_amount": str(discount)},
        )
    return DocumentTotals(subtotal=subtotal, tax_amount=tax, discount_amount=discount, total_amount=total)
