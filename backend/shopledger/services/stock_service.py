# Overview: Service-layer operations for per-shop stock; add/reduce/adjust primitives paired with ledger entries.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import Product, Shop, StockRow, StockTransaction
from ..validation import ensure_within_bounds, require_id, to_optional_amount, to_quantity
from .ledger_service import append_stock_transaction
from .lifecycle_service import DIRECTION, TransactionType, parse_status, signed_delta
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


"""
Stock movement primitives

Every primitive mutates exactly one StockRow and appends exactly one
StockTransaction with the matching signed delta, then flushes. None of them
commit: the caller's UnitOfWork decides. Multi-step operations (sales,
transfers) call several primitives inside one UnitOfWork so that the first
failure rolls all of them back.

The `*_inner` functions take the session explicitly; the public wrappers run
one primitive in its own UnitOfWork.
"""


@dataclass(frozen=True)
class StockLookup:
    """Result of looking up a (shop, product) row: either found or missing."""

    shop_id: int
    product_id: int
    row: StockRow | None

    @property
    def found(self) -> bool:
        return self.row is not None

    @property
    def quantity(self) -> Decimal:
        return Decimal(self.row.quantity) if self.row is not None else Decimal("0")


def lookup_stock_row(session, shop_id: int, product_id: int, *, lock: bool = False) -> StockLookup:
    query = session.query(StockRow).filter_by(shop_id=shop_id, product_id=product_id)
    if lock:
        query = lock_for_update(query)
    return StockLookup(shop_id=shop_id, product_id=product_id, row=query.first())


def require_shop(session, shop_id: int) -> Shop:
    require_id(shop_id, "shop_id")
    shop = session.query(Shop).filter_by(id=shop_id).first()
    if shop is None:
        raise NotFound(f"Shop {shop_id} not found", details={"shop_id": shop_id})
    return shop


def require_product(session, product_id: int) -> Product:
    require_id(product_id, "product_id")
    product = session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def _check_direction(transaction_type, expected: int) -> TransactionType:
    tx_type = parse_status(TransactionType, transaction_type)
    if DIRECTION[tx_type] != expected:
        raise ValidationError(f"Transaction type {tx_type.value} cannot be used for this movement")
    return tx_type


def add_stock_inner(
    session,
    *,
    shop_id: int,
    product_id: int,
    quantity,
    buy_price=None,
    sale_price=None,
    min_stock_level=None,
    transaction_type=TransactionType.PURCHASE,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> tuple[StockRow, StockTransaction]:
    """
    Credit a shop with quantity (upsert) and append the positive ledger entry.

    Found: increment; prices and min level are overwritten only when supplied.
    Missing: insert; min level falls back to the product default.

    Raises:
        ValidationError: quantity <= 0, bad price, a debiting transaction_type,
            or a resulting quantity beyond DECIMAL(10, 2)
        NotFound: Shop or product does not exist
    """
    qty = to_quantity(quantity)
    buy = to_optional_amount(buy_price, "buy_price")
    sale = to_optional_amount(sale_price, "sale_price")
    min_level = to_optional_amount(min_stock_level, "min_stock_level")
    tx_type = _check_direction(transaction_type, 1)

    require_shop(session, shop_id)
    product = require_product(session, product_id)

    lookup = lookup_stock_row(session, shop_id, product_id, lock=True)
    if lookup.found:
        row = lookup.row
        row.quantity = ensure_within_bounds(lookup.quantity + qty, "quantity")
        if buy is not None:
            row.buy_price = buy
        if sale is not None:
            row.sale_price = sale
        if min_level is not None:
            row.min_stock_level = min_level
    else:
        row = StockRow(
            shop_id=shop_id,
            product_id=product_id,
            quantity=qty,
            buy_price=buy,
            sale_price=sale,
            min_stock_level=min_level if min_level is not None else (product.default_min_stock_level or Decimal("0")),
            max_stock_level=Decimal("0"),
        )
        session.add(row)

    entry = append_stock_transaction(
        session,
        shop_id=shop_id,
        product_id=product_id,
        transaction_type=tx_type,
        quantity=signed_delta(tx_type, qty),
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_id,
    )
    return row, entry


def reduce_stock_inner(
    session,
    *,
    shop_id: int,
    product_id: int,
    quantity,
    transaction_type=TransactionType.SALE,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> tuple[StockRow, StockTransaction]:
    """
    Debit a shop under a row lock and append the negative ledger entry.

    Raises:
        ValidationError: quantity <= 0 or a crediting transaction_type
        InsufficientStock: No row for the pair, or quantity on hand < quantity.
            The row is left untouched.
    """
    qty = to_quantity(quantity)
    tx_type = _check_direction(transaction_type, -1)

    lookup = lookup_stock_row(session, shop_id, product_id, lock=True)
    if not lookup.found or lookup.quantity < qty:
        raise InsufficientStock(
            f"Insufficient stock for product {product_id} in shop {shop_id}: "
            f"requested {qty}, available {lookup.quantity}",
            shop_id=shop_id,
            product_id=product_id,
            requested=qty,
            available=lookup.quantity,
        )

    row = lookup.row
    row.quantity = lookup.quantity - qty

    entry = append_stock_transaction(
        session,
        shop_id=shop_id,
        product_id=product_id,
        transaction_type=tx_type,
        quantity=signed_delta(tx_type, qty),
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_id,
    )
    return row, entry


def adjust_stock_inner(
    session,
    *,
    shop_id: int,
    product_id: int,
    new_quantity,
    notes: str | None = None,
    actor_id: int | None = None,
) -> tuple[StockRow, StockTransaction]:
    """
    Set the absolute quantity for a pair and record the difference.

    A zero difference still records an adjustment entry so that a count which
    matched the books is visible in the ledger.

    Raises:
        ValidationError: new_quantity < 0
        NotFound: Shop or product does not exist
    """
    target = to_quantity(new_quantity, "new_quantity", allow_zero=True)

    require_shop(session, shop_id)
    product = require_product(session, product_id)

    lookup = lookup_stock_row(session, shop_id, product_id, lock=True)
    delta = target - lookup.quantity
    if lookup.found:
        row = lookup.row
        row.quantity = target
    else:
        row = StockRow(
            shop_id=shop_id,
            product_id=product_id,
            quantity=target,
            min_stock_level=product.default_min_stock_level or Decimal("0"),
            max_stock_level=Decimal("0"),
        )
        session.add(row)

    entry = append_stock_transaction(
        session,
        shop_id=shop_id,
        product_id=product_id,
        transaction_type=TransactionType.ADJUSTMENT,
        quantity=delta,
        notes=notes,
        created_by=actor_id,
    )
    return row, entry


def add_stock(*, uow: UnitOfWork | None = None, **kwargs) -> tuple[StockRow, StockTransaction]:
    """add_stock_inner in its own transaction."""
    return run_in_unit_of_work(uow, lambda session: add_stock_inner(session, **kwargs))


def reduce_stock(*, uow: UnitOfWork | None = None, **kwargs) -> tuple[StockRow, StockTransaction]:
    """reduce_stock_inner in its own transaction."""
    return run_in_unit_of_work(uow, lambda session: reduce_stock_inner(session, **kwargs))


def adjust_stock(*, uow: UnitOfWork | None = None, **kwargs) -> tuple[StockRow, StockTransaction]:
    """adjust_stock_inner in its own transaction."""
    return run_in_unit_of_work(uow, lambda session: adjust_stock_inner(session, **kwargs))


def get_stock_row(shop_id: int, product_id: int, session=None) -> StockRow | None:
    session = session if session is not None else db.session
    return lookup_stock_row(session, shop_id, product_id).row


def get_stock_quantity(shop_id: int, product_id: int, session=None) -> Decimal:
    """Quantity on hand; zero when the pair was never stocked."""
    session = session if session is not None else db.session
    return lookup_stock_row(session, shop_id, product_id).quantity


def list_shop_stock(shop_id: int, session=None) -> list[StockRow]:
    session = session if session is not None else db.session
    return (
        session.query(StockRow)
        .filter(StockRow.shop_id == shop_id)
        .order_by(StockRow.product_id.asc())
        .all()
    )


def list_product_stock(product_id: int, session=None) -> list[StockRow]:
    """Stock rows for one product across all shops."""
    session = session if session is not None else db.session
    return (
        session.query(StockRow)
        .filter(StockRow.product_id == product_id)
        .order_by(StockRow.shop_id.asc())
        .all()
    )


def total_product_quantity(product_id: int, session=None) -> Decimal:
    return sum((row.quantity for row in list_product_stock(product_id, session)), Decimal("0"))
