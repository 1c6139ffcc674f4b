from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import decimal_to_str


SHOP_STATUSES = ("active", "inactive", "suspended")
PRODUCT_STATUSES = ("active", "inactive", "discontinued")


class Shop(db.Model):
    """
    A selling location. Owns zero or more StockRows.

    Shops are never hard-deleted while stock or ledger rows reference them;
    deactivate through status instead.
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "phone": self.phone,
            "email": self.email,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data, shared by all shops.

    A product never holds a quantity; per-shop quantities live in StockRow.
    default_min_stock_level seeds StockRow.min_stock_level when a shop first
    stocks the product without naming its own threshold.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(100), nullable=True, unique=True)
    barcode = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    default_min_stock_level = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "barcode": self.barcode,
            "description": self.description,
            "default_min_stock_level": decimal_to_str(self.default_min_stock_level),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
