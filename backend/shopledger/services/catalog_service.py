from __future__ import annotations

from decimal import Decimal

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Product, Shop
from ..models.catalog import PRODUCT_STATUSES, SHOP_STATUSES
from ..validation import require_choice, to_amount
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


def create_shop(
    name: str,
    *,
    location: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    uow: UnitOfWork | None = None,
) -> Shop:
    def _op(session):
        if not name or not name.strip():
            raise ValidationError("Shop name is required")

        shop = Shop(name=name.strip(), location=location, phone=phone, email=email)
        session.add(shop)
        session.flush()
        return shop

    return run_in_unit_of_work(uow, _op)


def set_shop_status(shop_id: int, status: str, *, uow: UnitOfWork | None = None) -> Shop:
    def _op(session):
        require_choice(status, "status", SHOP_STATUSES)
        shop = lock_for_update(session.query(Shop).filter_by(id=shop_id)).first()
        if not shop:
            raise NotFound(f"Shop {shop_id} not found", details={"shop_id": shop_id})
        shop.status = status
        session.flush()
        return shop

    return run_in_unit_of_work(uow, _op)


def get_shop(shop_id: int) -> Shop | None:
    return db.session.query(Shop).filter_by(id=shop_id).first()


def list_shops(status: str | None = None) -> list[Shop]:
    query = db.session.query(Shop)
    if status:
        query = query.filter(Shop.status == require_choice(status, "status", SHOP_STATUSES))
    return query.order_by(Shop.name.asc()).all()


def create_product(
    name: str,
    *,
    sku: str | None = None,
    barcode: str | None = None,
    description: str | None = None,
    default_min_stock_level=None,
    uow: UnitOfWork | None = None,
) -> Product:
    def _op(session):
        if not name or not name.strip():
            raise ValidationError("Product name is required")

        if sku:
            existing = session.query(Product).filter_by(sku=sku).first()
            if existing:
                raise ValidationError(f"SKU {sku} already exists", details={"product_id": existing.id})

        product = Product(
            name=name.strip(),
            sku=sku or None,
            barcode=barcode,
            description=description,
            default_min_stock_level=to_amount(
                default_min_stock_level, "default_min_stock_level", default=Decimal("0")
            ),
        )
        session.add(product)
        session.flush()
        return product

    return run_in_unit_of_work(uow, _op)


def set_product_status(product_id: int, status: str, *, uow: UnitOfWork | None = None) -> Product:
    def _op(session):
        require_choice(status, "status", PRODUCT_STATUSES)
        product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        product.status = status
        session.flush()
        return product

    return run_in_unit_of_work(uow, _op)


def get_product(product_id: int) -> Product | None:
    return db.session.query(Product).filter_by(id=product_id).first()


def list_products(status: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if status:
        query = query.filter(Product.status == require_choice(status, "status", PRODUCT_STATUSES))
    return query.order_by(Product.name.asc()).all()
