# Overview: Service-layer operations for supplier quotations; totals, lifecycle and soft delete.

"""
Supplier quotations

Quotation items are free text and never touch stock. The transactional part
is keeping items and totals consistent: replacing items and recomputing
subtotal/tax/total happen in one transaction.

Content edits are allowed while the quotation is draft, sent or expired.
Accepted, rejected and cancelled quotations are frozen.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..errors import InvalidStateTransition, NotFound, ValidationError
from ..extensions import db
from ..models import Quotation, QuotationItem
from ..time_utils import utcnow
from ..validation import quantize_money, require_id, require_items, to_amount
from .document_service import next_quotation_number
from .lifecycle_service import QuotationStatus, ensure_transition, parse_status
from .pricing import PricedLine, document_totals, price_line
from .stock_service import require_shop
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


EDITABLE_STATUSES = frozenset({QuotationStatus.DRAFT, QuotationStatus.SENT, QuotationStatus.EXPIRED})

SUPPLIER_FIELDS = ("supplier_name", "supplier_email", "supplier_phone", "supplier_address")

UPDATABLE_FIELDS = frozenset(SUPPLIER_FIELDS) | {
    "shop_id",
    "items",
    "apply_tax",
    "tax_amount",
    "discount_amount",
    "valid_until",
    "notes",
    "status",
}


def _parse_valid_until(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError("valid_until must be an ISO date (YYYY-MM-DD)")


def _tax_for(subtotal: Decimal) -> Decimal:
    rate = Decimal(str(current_app.config.get("QUOTATION_TAX_RATE", "0.16")))
    return quantize_money(subtotal * rate)


def _price_items(items) -> list[tuple[dict, PricedLine]]:
    priced = []
    for index, item in enumerate(require_items(items), start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        name = (item.get("item_name") or "").strip()
        if not name:
            raise ValidationError(f"items[{index}].item_name is required")
        line = price_line(item.get("quantity"), item.get("unit_price"), item.get("discount"), label=f"items[{index}]")
        priced.append(({**item, "item_name": name}, line))
    return priced


def _replace_items(session, quotation: Quotation, priced) -> None:
    quotation.items.clear()
    session.flush()
    for line_number, (item, line) in enumerate(priced, start=1):
        quotation.items.append(QuotationItem(
            line_number=line_number,
            item_name=item["item_name"],
            description=item.get("description"),
            sku=item.get("sku"),
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount=line.discount,
            total_price=line.total_price,
        ))


def _live_quotation(session, quotation_id: int, *, lock: bool = False) -> Quotation:
    query = session.query(Quotation).filter(Quotation.id == quotation_id, Quotation.deleted_at.is_(None))
    if lock:
        query = lock_for_update(query)
    quotation = query.first()
    if not quotation:
        raise NotFound(f"Quotation {quotation_id} not found", details={"quotation_id": quotation_id})
    return quotation


def create_quotation_inner(
    session,
    *,
    supplier_name: str,
    items: list[dict],
    supplier_email: str | None = None,
    supplier_phone: str | None = None,
    supplier_address: str | None = None,
    shop_id: int | None = None,
    apply_tax: bool = False,
    tax_amount=0,
    discount_amount=0,
    valid_until=None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> Quotation:
    """
    Create a draft quotation with its items.

    Args:
        apply_tax: When true, tax_amount is replaced by QUOTATION_TAX_RATE x subtotal

    Raises:
        ValidationError: Missing supplier, bad items, negative total
        NotFound: shop_id given but the shop does not exist
    """
    if not supplier_name or not supplier_name.strip():
        raise ValidationError("supplier_name is required")

    priced = _price_items(items)
    lines = [line for _, line in priced]
    if apply_tax:
        subtotal = document_totals(lines, 0, 0).subtotal
        tax_amount = _tax_for(subtotal)
    totals = document_totals(lines, tax_amount, discount_amount)

    if shop_id is not None:
        require_shop(session, require_id(shop_id, "shop_id"))

    quotation = Quotation(
        quotation_number=next_quotation_number(session),
        supplier_name=supplier_name.strip(),
        supplier_email=supplier_email,
        supplier_phone=supplier_phone,
        supplier_address=supplier_address,
        shop_id=shop_id,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        discount_amount=totals.discount_amount,
        total_amount=totals.total_amount,
        status=QuotationStatus.DRAFT.value,
        valid_until=_parse_valid_until(valid_until),
        notes=notes,
        created_by=actor_id,
        quotation_date=utcnow(),
    )
    session.add(quotation)
    _replace_items(session, quotation, priced)
    session.flush()
    return quotation


def update_quotation_inner(session, *, quotation_id: int, changes: dict) -> Quotation:
    """
    Apply a partial update.

    - items: replaced wholesale; subtotal and total recomputed
    - apply_tax / tax_amount / discount_amount: total recomputed
    - status: validated against the quotation transition table

    Raises:
        ValidationError: Unknown field or bad value
        NotFound: Quotation missing or soft-deleted
        InvalidStateTransition: Quotation is frozen, or status change not allowed
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown quotation fields: {', '.join(sorted(unknown))}")

    quotation = _live_quotation(session, quotation_id, lock=True)
    current = parse_status(QuotationStatus, quotation.status)
    content_changes = set(changes) - {"status"}
    if content_changes and current not in EDITABLE_STATUSES:
        raise InvalidStateTransition(
            f"Quotation {quotation.id} is {current.value} and can no longer be edited",
            details={"status": current.value},
        )

    for field in SUPPLIER_FIELDS:
        if field in changes:
            setattr(quotation, field, changes[field])
    if "supplier_name" in changes and not (quotation.supplier_name or "").strip():
        raise ValidationError("supplier_name is required")

    if "shop_id" in changes:
        if changes["shop_id"] is not None:
            require_shop(session, require_id(changes["shop_id"], "shop_id"))
        quotation.shop_id = changes["shop_id"]
    if "valid_until" in changes:
        quotation.valid_until = _parse_valid_until(changes["valid_until"])
    if "notes" in changes:
        quotation.notes = changes["notes"]

    if "items" in changes:
        priced = _price_items(changes["items"])
        lines = [line for _, line in priced]
    else:
        priced = None
        lines = None

    if priced is not None or {"apply_tax", "tax_amount", "discount_amount"} & set(changes):
        if lines is not None:
            subtotal = document_totals(lines, 0, 0).subtotal
        else:
            subtotal = quantize_money(Decimal(quotation.subtotal))

        if changes.get("apply_tax"):
            tax = _tax_for(subtotal)
        elif "tax_amount" in changes:
            tax = to_amount(changes["tax_amount"], "tax_amount", default=Decimal("0"))
        else:
            tax = Decimal(quotation.tax_amount)

        if "discount_amount" in changes:
            discount = to_amount(changes["discount_amount"], "discount_amount", default=Decimal("0"))
        else:
            discount = Decimal(quotation.discount_amount)

        total = quantize_money(subtotal + tax - discount)
        if total < 0:
            raise ValidationError("Total amount cannot be negative")

        if priced is not None:
            _replace_items(session, quotation, priced)
        quotation.subtotal = subtotal
        quotation.tax_amount = quantize_money(tax)
        quotation.discount_amount = quantize_money(discount)
        quotation.total_amount = total

    if "status" in changes:
        target = parse_status(QuotationStatus, changes["status"])
        if target != current:
            quotation.status = ensure_transition(current, target, entity=f"Quotation {quotation.id}").value

    quotation.updated_at = utcnow()
    session.flush()
    return quotation


def mark_quotation_sent_inner(session, *, quotation_id: int) -> Quotation:
    """
    Move a draft or expired quotation to sent. Delivery is the caller's job.

    Raises:
        NotFound: Quotation missing or soft-deleted
        ValidationError: No supplier email on file
        InvalidStateTransition: Not draft or expired
    """
    quotation = _live_quotation(session, quotation_id, lock=True)
    target = ensure_transition(quotation.status, QuotationStatus.SENT, entity=f"Quotation {quotation.id}")
    if not quotation.supplier_email:
        raise ValidationError("Supplier email is required to send a quotation")

    quotation.status = target.value
    quotation.updated_at = utcnow()
    session.flush()
    return quotation


def delete_quotation_inner(session, *, quotation_id: int) -> Quotation:
    """Soft delete. The row stays for audit and disappears from reads."""
    quotation = _live_quotation(session, quotation_id, lock=True)
    quotation.deleted_at = utcnow()
    session.flush()
    return quotation


def create_quotation(*, uow: UnitOfWork | None = None, **kwargs) -> Quotation:
    return run_in_unit_of_work(uow, lambda session: create_quotation_inner(session, **kwargs))


def update_quotation(quotation_id: int, *, uow: UnitOfWork | None = None, **changes) -> Quotation:
    return run_in_unit_of_work(
        uow, lambda session: update_quotation_inner(session, quotation_id=quotation_id, changes=changes)
    )


def mark_quotation_sent(*, uow: UnitOfWork | None = None, **kwargs) -> Quotation:
    return run_in_unit_of_work(uow, lambda session: mark_quotation_sent_inner(session, **kwargs))


def delete_quotation(*, uow: UnitOfWork | None = None, **kwargs) -> Quotation:
    return run_in_unit_of_work(uow, lambda session: delete_quotation_inner(session, **kwargs))


def get_quotation(quotation_id: int) -> Quotation | None:
    return (
        db.session.query(Quotation)
        .filter(Quotation.id == quotation_id, Quotation.deleted_at.is_(None))
        .first()
    )


def list_quotations(*, shop_id: int | None = None, status: str | None = None) -> list[Quotation]:
    query = db.session.query(Quotation).filter(Quotation.deleted_at.is_(None))
    if shop_id is not None:
        query = query.filter(Quotation.shop_id == shop_id)
    if status:
        query = query.filter(Quotation.status == parse_status(QuotationStatus, status).value)
    return query.order_by(Quotation.id.desc()).all()
