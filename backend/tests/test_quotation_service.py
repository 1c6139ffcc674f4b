from datetime import date
from decimal import Decimal

import pytest

from shopledger.errors import InvalidStateTransition, NotFound, ValidationError
from shopledger.extensions import db
from shopledger.models import StockTransaction
from shopledger.services import quotation_service


ITEMS = [
    {"item_name": "Rice 25kg bag", "quantity": 4, "unit_price": "30.00"},
    {"item_name": "Sugar 10kg", "quantity": 2, "unit_price": "12.50", "discount": "1.00", "sku": "SUG-10"},
]


def _create(**overrides):
    fields = {
        "supplier_name": "Wholesale Ltd",
        "supplier_email": "orders@wholesale.test",
        "items": ITEMS,
        "actor_id": 1,
    }
    fields.update(overrides)
    return quotation_service.create_quotation(**fields)


def test_create_quotation_totals(db_session):
    quotation = _create(tax_amount="5.00", discount_amount="2.00", valid_until="2026-12-31")

    # 120.00 + 24.00
    assert quotation.subtotal == Decimal("144.00")
    assert quotation.total_amount == Decimal("147.00")
    assert quotation.status == "draft"
    assert quotation.valid_until == date(2026, 12, 31)
    assert quotation.quotation_number == "QUO-000-000001"
    assert [item.line_number for item in quotation.items] == [1, 2]
    assert db.session.query(StockTransaction).count() == 0


def test_apply_tax_uses_configured_rate(db_session):
    quotation = _create(apply_tax=True, tax_amount="99.00")

    assert quotation.tax_amount == Decimal("23.04")
    assert quotation.total_amount == Decimal("167.04")


def test_create_quotation_validation(db_session):
    with pytest.raises(ValidationError):
        _create(supplier_name=" ")
    with pytest.raises(ValidationError):
        _create(items=[])
    with pytest.raises(ValidationError):
        _create(items=[{"item_name": "", "quantity": 1, "unit_price": "1.00"}])
    with pytest.raises(ValidationError):
        _create(discount_amount="500.00")
    with pytest.raises(ValidationError):
        _create(valid_until="next week")
    with pytest.raises(NotFound):
        _create(shop_id=9999)

    assert quotation_service.list_quotations() == []


def test_update_replaces_items_and_recomputes(db_session):
    quotation_id = _create(tax_amount="4.00").id

    quotation_service.update_quotation(
        quotation_id,
        items=[{"item_name": "Flour 50kg", "quantity": 1, "unit_price": "40.00"}],
        discount_amount="5.00",
    )

    quotation = quotation_service.get_quotation(quotation_id)
    assert len(quotation.items) == 1
    assert quotation.subtotal == Decimal("40.00")
    assert quotation.tax_amount == Decimal("4.00")
    assert quotation.total_amount == Decimal("39.00")


def test_update_tax_only_recomputes_total(db_session):
    quotation_id = _create().id

    quotation_service.update_quotation(quotation_id, apply_tax=True)

    quotation = quotation_service.get_quotation(quotation_id)
    assert quotation.subtotal == Decimal("144.00")
    assert quotation.tax_amount == Decimal("23.04")
    assert quotation.total_amount == Decimal("167.04")


def test_quotation_transitions(db_session):
    quotation_id = _create().id

    with pytest.raises(InvalidStateTransition):
        quotation_service.update_quotation(quotation_id, status="accepted")

    quotation_service.mark_quotation_sent(quotation_id=quotation_id)
    quotation_service.update_quotation(quotation_id, status="expired")
    quotation_service.mark_quotation_sent(quotation_id=quotation_id)
    quotation_service.update_quotation(quotation_id, status="accepted")

    assert quotation_service.get_quotation(quotation_id).status == "accepted"

    with pytest.raises(InvalidStateTransition):
        quotation_service.update_quotation(quotation_id, status="cancelled")
    with pytest.raises(InvalidStateTransition):
        quotation_service.update_quotation(quotation_id, notes="too late")


def test_mark_sent_requires_supplier_email(db_session):
    quotation_id = _create(supplier_email=None).id

    with pytest.raises(ValidationError):
        quotation_service.mark_quotation_sent(quotation_id=quotation_id)
    assert quotation_service.get_quotation(quotation_id).status == "draft"


def test_soft_delete_hides_quotation(db_session):
    quotation_id = _create().id

    quotation_service.delete_quotation(quotation_id=quotation_id)

    assert quotation_service.get_quotation(quotation_id) is None
    assert quotation_service.list_quotations() == []
    with pytest.raises(NotFound):
        quotation_service.update_quotation(quotation_id, notes="x")
    with pytest.raises(NotFound):
        quotation_service.delete_quotation(quotation_id=quotation_id)


def test_update_rejects_unknown_fields(db_session):
    quotation_id = _create().id
    with pytest.raises(ValidationError):
        quotation_service.update_quotation(quotation_id, total_amount="1.00")
