from decimal import Decimal

import pytest

from shopledger.errors import AlreadyProcessed, InsufficientStock, NotFound, ValidationError
from shopledger.extensions import db
from shopledger.models import StockTransaction, StockTransfer
from shopledger.services import ledger_service, stock_service, transfer_service

from conftest import quantity_of, stock_up


def _transfer_entries(transfer_id):
    return (
        db.session.query(StockTransaction)
        .filter_by(reference_type="stock_transfer", reference_id=transfer_id)
        .order_by(StockTransaction.id.asc())
        .all()
    )


def test_transfer_of_entire_stock(shop, other_shop, product):
    """Shop A holds 4, shop B has no row: transfer 4 then complete."""
    stock_up(shop, product, 4)

    transfer = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=4, actor_id=1
    )
    transfer_id = transfer.id
    assert transfer.status == "pending"
    assert transfer.transfer_number == f"TRF-{shop.id:03d}-000001"
    assert quantity_of(shop, product) == Decimal("4")
    assert stock_service.get_stock_row(other_shop.id, product.id) is None

    transfer_service.complete_transfer(transfer_id=transfer_id, receiver_id=2)

    assert quantity_of(shop, product) == Decimal("0")
    assert quantity_of(other_shop, product) == Decimal("4")
    entries = _transfer_entries(transfer_id)
    assert [(e.shop_id, e.transaction_type, e.quantity, e.created_by) for e in entries] == [
        (shop.id, "transfer_out", Decimal("-4"), 1),
        (other_shop.id, "transfer_in", Decimal("4"), 2),
    ]

    transfer = transfer_service.get_transfer(transfer_id)
    assert transfer.status == "completed"
    assert transfer.received_by == 2
    assert transfer.completed_at is not None
    assert ledger_service.reconcile_stock() == []


def test_transfer_conserves_total_quantity(shop, other_shop, product):
    stock_up(shop, product, 10)
    stock_up(other_shop, product, 3)
    before = stock_service.total_product_quantity(product.id)

    transfer = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity="2.5"
    )
    transfer_service.complete_transfer(transfer_id=transfer.id)

    db.session.expire_all()
    assert stock_service.total_product_quantity(product.id) == before
    assert quantity_of(shop, product) == Decimal("7.5")
    assert quantity_of(other_shop, product) == Decimal("5.5")


def test_create_transfer_validation(shop, other_shop, product):
    stock_up(shop, product, 2)

    with pytest.raises(ValidationError):
        transfer_service.create_transfer(
            from_shop_id=shop.id, to_shop_id=shop.id, product_id=product.id, quantity=1
        )
    with pytest.raises(ValidationError):
        transfer_service.create_transfer(
            from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=0
        )
    with pytest.raises(InsufficientStock):
        transfer_service.create_transfer(
            from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=3
        )
    with pytest.raises(InsufficientStock):
        transfer_service.create_transfer(
            from_shop_id=other_shop.id, to_shop_id=shop.id, product_id=product.id, quantity=1
        )
    with pytest.raises(NotFound):
        transfer_service.create_transfer(
            from_shop_id=shop.id, to_shop_id=9999, product_id=product.id, quantity=1
        )

    assert db.session.query(StockTransfer).count() == 0


def test_completion_rechecks_source(shop, other_shop, product):
    stock_up(shop, product, 5)
    transfer = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=4
    )
    transfer_id = transfer.id

    # Stock sold after the transfer was requested
    stock_service.reduce_stock(shop_id=shop.id, product_id=product.id, quantity=3)

    with pytest.raises(InsufficientStock):
        transfer_service.complete_transfer(transfer_id=transfer_id, receiver_id=2)

    assert transfer_service.get_transfer(transfer_id).status == "pending"
    assert quantity_of(shop, product) == Decimal("2")
    assert stock_service.get_stock_row(other_shop.id, product.id) is None
    assert _transfer_entries(transfer_id) == []


def test_completed_or_cancelled_transfer_cannot_be_processed_again(shop, other_shop, product):
    stock_up(shop, product, 10)
    done = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=1
    )
    done_id = done.id
    transfer_service.complete_transfer(transfer_id=done_id)

    with pytest.raises(AlreadyProcessed):
        transfer_service.complete_transfer(transfer_id=done_id)
    with pytest.raises(AlreadyProcessed):
        transfer_service.cancel_transfer(transfer_id=done_id)

    cancelled = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=1
    )
    cancelled_id = cancelled.id
    transfer_service.cancel_transfer(transfer_id=cancelled_id, actor_id=5)

    with pytest.raises(AlreadyProcessed):
        transfer_service.complete_transfer(transfer_id=cancelled_id)

    assert quantity_of(shop, product) == Decimal("9")
    assert quantity_of(other_shop, product) == Decimal("1")


def test_cancel_transfer_moves_nothing(shop, other_shop, product):
    stock_up(shop, product, 3)
    transfer = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=3
    )
    transfer_id = transfer.id
    transfer_service.cancel_transfer(transfer_id=transfer_id)

    transfer = transfer_service.get_transfer(transfer_id)
    assert transfer.status == "cancelled"
    assert transfer.cancelled_at is not None
    assert quantity_of(shop, product) == Decimal("3")
    assert _transfer_entries(transfer_id) == []


def test_missing_transfer(db_session):
    with pytest.raises(NotFound):
        transfer_service.complete_transfer(transfer_id=9999)
    with pytest.raises(NotFound):
        transfer_service.cancel_transfer(transfer_id=9999)


def test_list_transfers_filters(shop, other_shop, product):
    stock_up(shop, product, 10)
    first = transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=1
    )
    transfer_service.create_transfer(
        from_shop_id=shop.id, to_shop_id=other_shop.id, product_id=product.id, quantity=1
    )
    transfer_service.cancel_transfer(transfer_id=first.id)

    assert len(transfer_service.list_transfers(from_shop_id=shop.id)) == 2
    assert len(transfer_service.list_transfers(status="pending")) == 1
    assert transfer_service.list_transfers(to_shop_id=shop.id) == []
