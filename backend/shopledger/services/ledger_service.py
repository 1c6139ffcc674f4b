# Overview: Service-layer operations for the stock ledger; append-only writes and reconciliation reads.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import StockRow, StockTransaction
from ..time_utils import day_bounds
from .lifecycle_service import TransactionType, parse_status
"""
Stock Ledger Invariants (authoritative)

- Append-only: one StockTransaction per quantity change, never updated or deleted.
- Written inside the same DB transaction as the StockRow mutation it records.
- quantity is the signed delta; SUM(quantity) per (shop, product) equals
  StockRow.quantity for that pair.
- No business logic here: callers decide type, sign and reference.
"""


def append_stock_transaction(
    session,
    *,
    shop_id: int,
    product_id: int,
    transaction_type: TransactionType,
    quantity: Decimal,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    created_by: int | None = None,
) -> StockTransaction:
    """
    Append one ledger entry and flush (no commit).

    Args:
        quantity: Signed delta, already in ledger convention

    Returns:
        The flushed StockTransaction (id assigned)
    """
    entry = StockTransaction(
        shop_id=shop_id,
        product_id=product_id,
        transaction_type=parse_status(TransactionType, transaction_type).value,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=created_by,
    )
    session.add(entry)
    session.flush()
    return entry


def get_ledger_balance(shop_id: int, product_id: int, session=None) -> Decimal:
    """Sum of signed deltas for a pair. Zero when the pair has no entries."""
    session = session if session is not None else db.session
    total = (
        session.query(func.coalesce(func.sum(StockTransaction.quantity), 0))
        .filter(
            StockTransaction.shop_id == shop_id,
            StockTransaction.product_id == product_id,
        )
        .scalar()
    )
    return Decimal(total or 0)


def list_stock_transactions(
    *,
    shop_id: int | None = None,
    product_id: int | None = None,
    transaction_type: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int | None = None,
    session=None,
) -> list[StockTransaction]:
    """
    Ledger entries, newest first.

    start/end are inclusive calendar days. limit defaults to LEDGER_PAGE_LIMIT.
    """
    session = session if session is not None else db.session
    if limit is None:
        limit = current_app.config.get("LEDGER_PAGE_LIMIT", 200)

    query = session.query(StockTransaction)
    if shop_id is not None:
        query = query.filter(StockTransaction.shop_id == shop_id)
    if product_id is not None:
        query = query.filter(StockTransaction.product_id == product_id)
    if transaction_type:
        query = query.filter(
            StockTransaction.transaction_type == parse_status(TransactionType, transaction_type).value
        )
    if reference_type:
        query = query.filter(StockTransaction.reference_type == reference_type)
    if reference_id is not None:
        query = query.filter(StockTransaction.reference_id == reference_id)

    lower, upper = day_bounds(start, end)
    if lower is not None:
        query = query.filter(StockTransaction.created_at >= lower)
    if upper is not None:
        query = query.filter(StockTransaction.created_at <= upper)

    return (
        query.order_by(StockTransaction.id.desc())
        .limit(max(1, int(limit)))
        .all()
    )


def reconcile_stock(
    *,
    shop_id: int | None = None,
    product_id: int | None = None,
    session=None,
) -> list[dict]:
    """
    Compare StockRow.quantity with the ledger sum for every pair in scope.

    Pairs that only exist on one side are compared against zero.

    Returns:
        One dict per mismatching pair; empty when stock and ledger agree.
    """
    session = session if session is not None else db.session

    ledger_q = session.query(
        StockTransaction.shop_id,
        StockTransaction.product_id,
        func.sum(StockTransaction.quantity),
    )
    stock_q = session.query(StockRow.shop_id, StockRow.product_id, StockRow.quantity)
    if shop_id is not None:
        ledger_q = ledger_q.filter(StockTransaction.shop_id == shop_id)
        stock_q = stock_q.filter(StockRow.shop_id == shop_id)
    if product_id is not None:
        ledger_q = ledger_q.filter(StockTransaction.product_id == product_id)
        stock_q = stock_q.filter(StockRow.product_id == product_id)

    ledger = {
        (s, p): Decimal(total or 0)
        for s, p, total in ledger_q.group_by(StockTransaction.shop_id, StockTransaction.product_id).all()
    }
    stock = {(s, p): Decimal(qty or 0) for s, p, qty in stock_q.all()}

    mismatches = []
    for key in sorted(set(ledger) | set(stock)):
        stock_qty = stock.get(key, Decimal("0"))
        ledger_qty = ledger.get(key, Decimal("0"))
        if stock_qty != ledger_qty:
            mismatches.append({
                "shop_id": key[0],
                "product_id": key[1],
                "stock_quantity": stock_qty,
                "ledger_quantity": ledger_qty,
                "difference": stock_qty - ledger_qty,
            })
    return mismatches
