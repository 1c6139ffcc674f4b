# Overview: Service-layer operations for sales; multi-line sale creation and cancellation with stock movements.

"""
Sales

WHY: A sale and the stock it consumes are one fact. Creating a sale inserts
the Sale, its SaleItems, the StockRow decrements and the "sale" ledger
entries in one transaction; the first line that cannot be covered rolls all
of it back. Cancelling returns every line with "return" entries in one
transaction.
"""

from __future__ import annotations

from datetime import date

from ..errors import NotCancellable, NotFound, ValidationError
from ..extensions import db
from ..models import Sale, SaleItem
from ..time_utils import day_bounds, utcnow
from ..validation import require_id, require_items
from .document_service import next_sale_number
from .lifecycle_service import SaleStatus, TransactionType, ensure_transition, parse_status
from .payment_service import derive_payment_status, get_total_paid
from .pricing import document_totals, price_line
from .stock_service import add_stock_inner, reduce_stock_inner, require_product, require_shop
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


SALE_REFERENCE = "sale"

# Statuses a sale may be created in
INITIAL_SALE_STATUSES = frozenset({SaleStatus.PENDING, SaleStatus.COMPLETED})


def create_sale_inner(
    session,
    *,
    shop_id: int,
    items: list[dict],
    tax_amount=0,
    discount_amount=0,
    actor_id: int | None = None,
    customer_name: str | None = None,
    customer_email: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    status=SaleStatus.COMPLETED,
) -> Sale:
    """
    Create a sale and reduce stock for every item.

    Args:
        items: [{"product_id", "quantity", "unit_price", "discount"?}, ...]
        status: "completed" (paid at the counter) or "pending" (on account).
            Stock is reduced either way.

    Raises:
        ValidationError: Empty items, bad numbers, negative total, bad status
        NotFound: Shop or a product does not exist
        InsufficientStock: An item exceeds the shop's quantity; nothing is kept
    """
    sale_status = parse_status(SaleStatus, status)
    if sale_status not in INITIAL_SALE_STATUSES:
        raise ValidationError(f"A sale cannot be created as {sale_status.value}")

    lines = []
    for index, item in enumerate(require_items(items), start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = require_id(item.get("product_id"), f"items[{index}].product_id")
        priced = price_line(
            item.get("quantity"),
            item.get("unit_price"),
            item.get("discount"),
            label=f"items[{index}]",
        )
        lines.append((product_id, priced))

    totals = document_totals([priced for _, priced in lines], tax_amount, discount_amount)

    require_shop(session, shop_id)
    for product_id, _ in lines:
        require_product(session, product_id)

    sale = Sale(
        sale_number=next_sale_number(session, shop_id),
        shop_id=shop_id,
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=customer_phone,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        discount_amount=totals.discount_amount,
        total_amount=totals.total_amount,
        status=sale_status.value,
        notes=notes,
        created_by=actor_id,
        sale_date=utcnow(),
    )
    session.add(sale)
    session.flush()

    for line_number, (product_id, priced) in enumerate(lines, start=1):
        session.add(SaleItem(
            sale_id=sale.id,
            product_id=product_id,
            line_number=line_number,
            quantity=priced.quantity,
            unit_price=priced.unit_price,
            discount=priced.discount,
            total_price=priced.total_price,
        ))
        reduce_stock_inner(
            session,
            shop_id=shop_id,
            product_id=product_id,
            quantity=priced.quantity,
            transaction_type=TransactionType.SALE,
            reference_type=SALE_REFERENCE,
            reference_id=sale.id,
            notes=f"Sale {sale.sale_number}",
            actor_id=actor_id,
        )

    session.flush()
    return sale


def cancel_sale_inner(session, *, sale_id: int, actor_id: int | None = None) -> Sale:
    """
    Cancel a completed sale and return every item to the shop.

    Raises:
        NotCancellable: Sale does not exist or is not completed
    """
    sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotCancellable(f"Sale {sale_id} not found", details={"sale_id": sale_id})

    target = ensure_transition(
        sale.status,
        SaleStatus.CANCELLED,
        entity=f"Sale {sale.id}",
        error_cls=NotCancellable,
    )

    for item in sale.items:
        add_stock_inner(
            session,
            shop_id=sale.shop_id,
            product_id=item.product_id,
            quantity=item.quantity,
            transaction_type=TransactionType.RETURN,
            reference_type=SALE_REFERENCE,
            reference_id=sale.id,
            notes=f"Cancellation of sale {sale.sale_number}",
            actor_id=actor_id,
        )

    sale.status = target.value
    sale.cancelled_at = utcnow()
    sale.cancelled_by = actor_id
    session.flush()
    return sale


def create_sale(*, uow: UnitOfWork | None = None, **kwargs) -> Sale:
    return run_in_unit_of_work(uow, lambda session: create_sale_inner(session, **kwargs))


def cancel_sale(*, uow: UnitOfWork | None = None, **kwargs) -> Sale:
    return run_in_unit_of_work(uow, lambda session: cancel_sale_inner(session, **kwargs))


def get_sale(sale_id: int) -> Sale | None:
    return db.session.query(Sale).filter_by(id=sale_id).first()


def get_sale_summary(sale_id: int) -> dict:
    """
    Sale with items, payments and the derived payment state.

    Raises:
        NotFound: Sale does not exist
    """
    sale = get_sale(sale_id)
    if not sale:
        raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})

    total_paid = get_total_paid(sale.id)
    data = sale.to_dict()
    data["items"] = [item.to_dict() for item in sale.items]
    data["payments"] = [payment.to_dict() for payment in sale.payments]
    data["total_paid"] = str(total_paid)
    data["payment_status"] = derive_payment_status(total_paid, sale.total_amount)
    return data


def list_sales(
    *,
    shop_id: int | None = None,
    status: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 100,
) -> list[Sale]:
    query = db.session.query(Sale)
    if shop_id is not None:
        query = query.filter(Sale.shop_id == shop_id)
    if status:
        query = query.filter(Sale.status == parse_status(SaleStatus, status).value)

    lower, upper = day_bounds(start, end)
    if lower is not None:
        query = query.filter(Sale.sale_date >= lower)
    if upper is not None:
        query = query.filter(Sale.sale_date <= upper)

    return query.order_by(Sale.id.desc()).limit(max(1, limit)).all()
