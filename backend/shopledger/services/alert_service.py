# Overview: Read-only low-stock alerts derived from stock rows and their minimum levels.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Product, Shop, StockRow
from ..validation import require_choice


ALERT_LEVELS = ("out_of_stock", "critical", "low")


def classify_stock_level(quantity: Decimal, min_stock_level: Decimal, critical_ratio: Decimal) -> str | None:
    """
    out_of_stock: quantity == 0
    critical:     quantity <= min * ratio
    low:          quantity <= min
    None when quantity is above the minimum.
    """
    quantity = Decimal(quantity)
    min_level = Decimal(min_stock_level or 0)
    if quantity > min_level:
        return None
    if quantity == 0:
        return "out_of_stock"
    if quantity <= min_level * critical_ratio:
        return "critical"
    return "low"


def get_low_stock_alerts(*, shop_id: int | None = None, level: str | None = None) -> list[dict]:
    """
    Stock rows at or below their minimum level, for active products.

    Ordered by quantity ascending, so the emptiest shelves come first.
    """
    if level is not None:
        require_choice(level, "level", ALERT_LEVELS)
    ratio = Decimal(str(current_app.config.get("LOW_STOCK_CRITICAL_RATIO", "0.5")))

    query = (
        db.session.query(StockRow, Product, Shop)
        .join(Product, Product.id == StockRow.product_id)
        .join(Shop, Shop.id == StockRow.shop_id)
        .filter(StockRow.quantity <= StockRow.min_stock_level)
        .filter(Product.status == "active")
    )
    if shop_id is not None:
        query = query.filter(StockRow.shop_id == shop_id)

    alerts = []
    for row, product, shop in query.order_by(StockRow.quantity.asc(), Product.name.asc()).all():
        alert_level = classify_stock_level(row.quantity, row.min_stock_level, ratio)
        if alert_level is None or (level is not None and alert_level != level):
            continue
        alerts.append({
            "shop_id": shop.id,
            "shop_name": shop.name,
            "product_id": product.id,
            "product_name": product.name,
            "sku": product.sku,
            "quantity": Decimal(row.quantity),
            "min_stock_level": Decimal(row.min_stock_level),
            "shortage": Decimal(row.min_stock_level) - Decimal(row.quantity),
            "alert_level": alert_level,
        })
    return alerts


def summarize_alerts(alerts: list[dict]) -> dict:
    summary = {"total": len(alerts)}
    for alert_level in ALERT_LEVELS:
        summary[alert_level] = sum(1 for alert in alerts if alert["alert_level"] == alert_level)
    return summary
