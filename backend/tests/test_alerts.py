from decimal import Decimal

import pytest

from shopledger.errors import ValidationError
from shopledger.services import alert_service, catalog_service, stock_service

from conftest import stock_up


RATIO = Decimal("0.5")


@pytest.mark.parametrize("quantity,minimum,expected", [
    ("0", "10", "out_of_stock"),
    ("5", "10", "critical"),
    ("6", "10", "low"),
    ("10", "10", "low"),
    ("11", "10", None),
    ("0", "0", "out_of_stock"),
])
def test_classify_stock_level(quantity, minimum, expected):
    assert alert_service.classify_stock_level(Decimal(quantity), Decimal(minimum), RATIO) == expected


def test_low_stock_alerts(shop, other_shop, product, other_product):
    # product default min level is 5
    stock_up(shop, product, 2)
    stock_up(other_shop, product, 4)
    stock_up(shop, other_product, 3, min_stock_level="2")
    stock_service.adjust_stock(shop_id=other_shop.id, product_id=other_product.id, new_quantity=0)

    alerts = alert_service.get_low_stock_alerts()
    assert [(a["shop_id"], a["product_id"], a["alert_level"]) for a in alerts] == [
        (other_shop.id, other_product.id, "out_of_stock"),
        (shop.id, product.id, "critical"),
        (other_shop.id, product.id, "low"),
    ]
    assert alerts[1]["shortage"] == Decimal("3")

    assert len(alert_service.get_low_stock_alerts(shop_id=shop.id)) == 1
    assert [a["alert_level"] for a in alert_service.get_low_stock_alerts(level="low")] == ["low"]
    assert alert_service.summarize_alerts(alerts) == {"total": 3, "out_of_stock": 1, "critical": 1, "low": 1}


def test_inactive_products_are_not_alerted(shop, product):
    stock_up(shop, product, 1)
    catalog_service.set_product_status(product.id, "discontinued")

    assert alert_service.get_low_stock_alerts() == []


def test_unknown_alert_level(db_session):
    with pytest.raises(ValidationError):
        alert_service.get_low_stock_alerts(level="urgent")
