from datetime import date, datetime
from decimal import Decimal

import pytest

from shopledger.errors import InsufficientStock, NotCancellable, NotFound, ValidationError
from shopledger.extensions import db
from shopledger.models import Sale, SaleItem, StockTransaction
from shopledger.services import ledger_service, sales_service

from conftest import quantity_of, stock_up


def _sale_entries(sale_id):
    return (
        db.session.query(StockTransaction)
        .filter_by(reference_type="sale", reference_id=sale_id)
        .order_by(StockTransaction.id.asc())
        .all()
    )


def test_sale_then_cancel_restores_stock(shop, product):
    """Sale of 3 from 10 leaves 7; cancelling returns to 10 with a +3 return entry."""
    stock_up(shop, product, 10)

    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 3, "unit_price": "5.00"}],
        actor_id=1,
    )
    sale_id = sale.id

    assert quantity_of(shop, product) == Decimal("7")
    entries = _sale_entries(sale_id)
    assert [(e.transaction_type, e.quantity) for e in entries] == [("sale", Decimal("-3"))]

    sales_service.cancel_sale(sale_id=sale_id, actor_id=2)

    assert quantity_of(shop, product) == Decimal("10")
    entries = _sale_entries(sale_id)
    assert [(e.transaction_type, e.quantity) for e in entries] == [
        ("sale", Decimal("-3")),
        ("return", Decimal("3")),
    ]
    sale = sales_service.get_sale(sale_id)
    assert sale.status == "cancelled"
    assert sale.cancelled_by == 2
    assert sale.cancelled_at is not None


def test_sale_totals(shop, product, other_product):
    stock_up(shop, product, 10)
    stock_up(shop, other_product, 10)

    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[
            {"product_id": product.id, "quantity": 2, "unit_price": "4.99", "discount": "0.98"},
            {"product_id": other_product.id, "quantity": "1.5", "unit_price": "3.33"},
        ],
        tax_amount="1.20",
        discount_amount="0.50",
        customer_name="Amina",
    )

    # 2*4.99-0.98 = 9.00 ; 1.5*3.33 = 4.995 -> 5.00
    assert sale.subtotal == Decimal("14.00")
    assert sale.total_amount == Decimal("14.70")
    assert sale.sale_number.startswith(f"SALE-{shop.id:03d}-")
    items = db.session.query(SaleItem).filter_by(sale_id=sale.id).order_by(SaleItem.line_number).all()
    assert [item.total_price for item in items] == [Decimal("9.00"), Decimal("5.00")]


def test_sale_numbers_are_sequential_per_shop(shop, other_shop, product):
    stock_up(shop, product, 10)
    stock_up(other_shop, product, 10)
    item = [{"product_id": product.id, "quantity": 1, "unit_price": "1.00"}]

    first = sales_service.create_sale(shop_id=shop.id, items=item).sale_number
    second = sales_service.create_sale(shop_id=shop.id, items=item).sale_number
    elsewhere = sales_service.create_sale(shop_id=other_shop.id, items=item).sale_number

    assert first == f"SALE-{shop.id:03d}-000001"
    assert second == f"SALE-{shop.id:03d}-000002"
    assert elsewhere == f"SALE-{other_shop.id:03d}-000001"


def test_failing_line_rolls_back_whole_sale(shop, product, other_product):
    stock_up(shop, product, 10)
    stock_up(shop, other_product, 1)

    with pytest.raises(InsufficientStock):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[
                {"product_id": product.id, "quantity": 4, "unit_price": "2.00"},
                {"product_id": other_product.id, "quantity": 2, "unit_price": "2.00"},
            ],
        )

    assert db.session.query(Sale).count() == 0
    assert db.session.query(SaleItem).count() == 0
    assert quantity_of(shop, product) == Decimal("10")
    assert quantity_of(shop, other_product) == Decimal("1")
    assert db.session.query(StockTransaction).filter_by(transaction_type="sale").count() == 0
    assert ledger_service.reconcile_stock() == []


def test_sale_validation(shop, product):
    stock_up(shop, product, 10)

    with pytest.raises(ValidationError):
        sales_service.create_sale(shop_id=shop.id, items=[])
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[{"product_id": product.id, "quantity": 0, "unit_price": "1.00"}],
        )
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[{"product_id": product.id, "quantity": 1, "unit_price": "1.00"}],
            discount_amount="5.00",
        )
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[{"product_id": product.id, "quantity": 1, "unit_price": "1.00"}],
            status="cancelled",
        )
    with pytest.raises(NotFound):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[{"product_id": 9999, "quantity": 1, "unit_price": "1.00"}],
        )

    assert db.session.query(Sale).count() == 0
    assert quantity_of(shop, product) == Decimal("10")


def test_pending_sale_reduces_stock(shop, product):
    stock_up(shop, product, 5)
    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 2, "unit_price": "3.00"}],
        status="pending",
    )

    assert sale.status == "pending"
    assert quantity_of(shop, product) == Decimal("3")


def test_only_completed_sales_can_be_cancelled(shop, product):
    stock_up(shop, product, 5)
    pending = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "3.00"}],
        status="pending",
    )
    pending_id = pending.id

    with pytest.raises(NotCancellable):
        sales_service.cancel_sale(sale_id=pending_id)
    with pytest.raises(NotCancellable):
        sales_service.cancel_sale(sale_id=9999)

    completed = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "3.00"}],
    )
    completed_id = completed.id
    sales_service.cancel_sale(sale_id=completed_id)

    with pytest.raises(NotCancellable) as excinfo:
        sales_service.cancel_sale(sale_id=completed_id)
    assert excinfo.value.details == {"from": "cancelled", "to": "cancelled"}

    # One return only: the second cancel changed nothing
    assert quantity_of(shop, product) == Decimal("4")
    returns = db.session.query(StockTransaction).filter_by(transaction_type="return").count()
    assert returns == 1


def test_sale_summary_and_listing(shop, product):
    stock_up(shop, product, 5)
    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "3.00"}],
        status="pending",
    )

    summary = sales_service.get_sale_summary(sale.id)
    assert summary["payment_status"] == "unpaid"
    assert summary["total_paid"] == "0.00"
    assert len(summary["items"]) == 1

    assert [s.id for s in sales_service.list_sales(shop_id=shop.id, status="pending")] == [sale.id]
    assert sales_service.list_sales(status="cancelled") == []

    with pytest.raises(NotFound):
        sales_service.get_sale_summary(9999)


def test_sale_total_beyond_column_range_is_rejected(shop, product, other_product):
    stock_up(shop, product, 10)
    stock_up(shop, other_product, 10)

    with pytest.raises(ValidationError):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[{"product_id": product.id, "quantity": 2, "unit_price": "99999999.00"}],
        )
    with pytest.raises(ValidationError):
        sales_service.create_sale(
            shop_id=shop.id,
            items=[
                {"product_id": product.id, "quantity": 1, "unit_price": "60000000.00"},
                {"product_id": other_product.id, "quantity": 1, "unit_price": "60000000.00"},
            ],
        )

    assert db.session.query(Sale).count() == 0
    assert quantity_of(shop, product) == Decimal("10")
    assert quantity_of(shop, other_product) == Decimal("10")


def test_list_sales_includes_the_whole_end_day(shop, product):
    stock_up(shop, product, 10)
    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "4.00"}],
    )
    sale.sale_date = datetime(2026, 3, 31, 23, 30)
    db.session.commit()

    march = sales_service.list_sales(start=date(2026, 3, 1), end=date(2026, 3, 31))
    assert [s.id for s in march] == [sale.id]
    assert sales_service.list_sales(end=date(2026, 3, 30)) == []
    assert sales_service.list_sales(start=date(2026, 4, 1)) == []
