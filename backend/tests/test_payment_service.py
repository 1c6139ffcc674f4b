from decimal import Decimal

import pytest

from shopledger.errors import InvalidStateTransition, NotFound, ValidationError
from shopledger.services import payment_service, sales_service

from conftest import stock_up


@pytest.fixture
def pending_sale(shop, product):
    """Pending sale of 2 x 5.00 = 10.00."""
    stock_up(shop, product, 10)
    sale = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 2, "unit_price": "5.00"}],
        status="pending",
    )
    return sale.id


def test_partial_then_full_payment_promotes_sale(pending_sale):
    payment_service.create_payment(sale_id=pending_sale, payment_method="cash", amount="4.00", actor_id=1)

    assert sales_service.get_sale(pending_sale).status == "pending"
    assert payment_service.get_payment_status(pending_sale) == "partial"
    assert payment_service.get_total_paid(pending_sale) == Decimal("4.00")

    payment_service.create_payment(sale_id=pending_sale, payment_method="mobile_money", amount="6.00", actor_id=1)

    assert sales_service.get_sale(pending_sale).status == "completed"
    assert payment_service.get_payment_status(pending_sale) == "paid"


def test_payment_on_completed_sale_keeps_it_completed(shop, product):
    stock_up(shop, product, 10)
    sale_id = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "8.00"}],
    ).id

    payment_service.create_payment(sale_id=sale_id, payment_method="card", amount="3.00")

    assert sales_service.get_sale(sale_id).status == "completed"
    assert payment_service.get_payment_status(sale_id) == "partial"


def test_refund_does_not_revert_sale_status(pending_sale):
    payment = payment_service.create_payment(sale_id=pending_sale, payment_method="cash", amount="10.00")
    payment_id = payment.id
    assert sales_service.get_sale(pending_sale).status == "completed"

    payment_service.refund_payment(payment_id=payment_id, actor_id=3, notes="Customer returned goods")

    refunded = payment_service.get_payment(payment_id)
    assert refunded.status == "refunded"
    assert refunded.refunded_by == 3
    assert refunded.refunded_at is not None
    assert sales_service.get_sale(pending_sale).status == "completed"
    assert payment_service.get_total_paid(pending_sale) == Decimal("0.00")
    assert payment_service.get_payment_status(pending_sale) == "unpaid"


def test_refund_twice_is_rejected(pending_sale):
    payment_id = payment_service.create_payment(sale_id=pending_sale, payment_method="cash", amount="1.00").id
    payment_service.refund_payment(payment_id=payment_id)

    with pytest.raises(InvalidStateTransition):
        payment_service.refund_payment(payment_id=payment_id)
    with pytest.raises(NotFound):
        payment_service.refund_payment(payment_id=9999)


def test_payment_validation(pending_sale):
    with pytest.raises(ValidationError):
        payment_service.create_payment(sale_id=pending_sale, payment_method="cheque", amount="1.00")
    with pytest.raises(ValidationError):
        payment_service.create_payment(sale_id=pending_sale, payment_method="cash", amount="0")
    with pytest.raises(ValidationError):
        payment_service.create_payment(sale_id=pending_sale, payment_method="cash", amount="-2")
    with pytest.raises(NotFound):
        payment_service.create_payment(sale_id=9999, payment_method="cash", amount="1.00")

    assert payment_service.list_payments(sale_id=pending_sale) == []


def test_payment_on_cancelled_sale_is_rejected(shop, product):
    stock_up(shop, product, 10)
    sale_id = sales_service.create_sale(
        shop_id=shop.id,
        items=[{"product_id": product.id, "quantity": 1, "unit_price": "8.00"}],
    ).id
    sales_service.cancel_sale(sale_id=sale_id)

    with pytest.raises(InvalidStateTransition):
        payment_service.create_payment(sale_id=sale_id, payment_method="cash", amount="8.00")


def test_derive_payment_status():
    assert payment_service.derive_payment_status(Decimal("0"), Decimal("0")) == "paid"
    assert payment_service.derive_payment_status(Decimal("0"), Decimal("5")) == "unpaid"
    assert payment_service.derive_payment_status(Decimal("2"), Decimal("5")) == "partial"
    assert payment_service.derive_payment_status(Decimal("6"), Decimal("5")) == "paid"
