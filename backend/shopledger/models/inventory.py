from __future__ import annotations

from sqlalchemy import event

from ..errors import PersistenceError
from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import decimal_to_str


class StockRow(db.Model):
    """
    Current quantity of one product in one shop.

    This is the only mutable source of truth for "how much of product P is in
    shop S". Rows are created lazily by the first movement into the pair and
    are never deleted, only quantity-mutated.

    INVARIANTS:
    - (shop_id, product_id) is unique
    - quantity >= 0 (also a CHECK constraint, so a bypassed service check
      still fails at flush)
    - quantity == SUM(StockTransaction.quantity) for the same pair
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "product_id", name="uq_stock_shop_product"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    min_stock_level = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    max_stock_level = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # Per-shop pricing; null until first supplied
    buy_price = db.Column(db.Numeric(10, 2), nullable=True)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("stock_rows", lazy=True))
    product = db.relationship("Product", backref=db.backref("stock_rows", lazy=True))

    def __repr__(self) -> str:
        return f"<StockRow shop_id={self.shop_id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "quantity": decimal_to_str(self.quantity),
            "min_stock_level": decimal_to_str(self.min_stock_level),
            "max_stock_level": decimal_to_str(self.max_stock_level),
            "buy_price": decimal_to_str(self.buy_price),
            "sale_price": decimal_to_str(self.sale_price),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Ledger entry: one signed quantity change for a (shop, product) pair.

    Append-only. Updates and deletes through the ORM are refused (see the
    mapper listeners below); corrections are new entries.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stock_transactions_shop_product", "shop_id", "product_id"),
        db.Index("ix_stock_transactions_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)

    # Signed: positive credits the shop, negative debits it
    quantity = db.Column(db.Numeric(10, 2), nullable=False)

    # Causing entity, e.g. ("sale", 42) or ("stock_transfer", 7)
    reference_type = db.Column(db.String(50), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    shop = db.relationship("Shop")
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return (
            f"<StockTransaction id={self.id} type={self.transaction_type} "
            f"shop_id={self.shop_id} product_id={self.product_id} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "quantity": decimal_to_str(self.quantity),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockTransaction, "before_update")
def _refuse_ledger_update(mapper, connection, target):
    raise PersistenceError(f"Stock transaction {target.id} is immutable")


@event.listens_for(StockTransaction, "before_delete")
def _refuse_ledger_delete(mapper, connection, target):
    raise PersistenceError(f"Stock transaction {target.id} cannot be deleted")
