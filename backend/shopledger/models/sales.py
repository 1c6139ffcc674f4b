from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_to_str


PAYMENT_METHODS = ("cash", "card", "mobile_money", "bank_transfer", "credit")


class Sale(db.Model):
    """
    Sale document.

    STATUS (see services.lifecycle_service.SALE_TRANSITIONS):
    - pending: recorded on account, stock already reduced, awaiting payment
    - completed: paid or finalized at the counter
    - cancelled: reversed; stock returned with "return" ledger entries
    - refunded: historical/terminal

    Totals are stored, not recomputed on read:
        total_amount = subtotal + tax_amount - discount_amount
    """
    __tablename__ = "sales"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_number = db.Column(db.String(64), nullable=False, unique=True, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(50), nullable=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True, index=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.Integer, nullable=True)

    shop = db.relationship("Shop")
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.line_number",
        cascade="all, delete-orphan",
    )
    payments = db.relationship("Payment", backref="sale", lazy=True, order_by="Payment.id")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "shop_id": self.shop_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "subtotal": decimal_to_str(self.subtotal),
            "tax_amount": decimal_to_str(self.tax_amount),
            "discount_amount": decimal_to_str(self.discount_amount),
            "total_amount": decimal_to_str(self.total_amount),
            "status": self.status,
            "notes": self.notes,
            "created_by": self.created_by,
            "sale_date": to_utc_z(self.sale_date),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
        }


class SaleItem(db.Model):
    """Sale line. total_price = quantity * unit_price - discount."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False, default=1)

    quantity = db.Column(db.Numeric(10, 2), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "line_number": self.line_number,
            "quantity": decimal_to_str(self.quantity),
            "unit_price": decimal_to_str(self.unit_price),
            "discount": decimal_to_str(self.discount),
            "total_price": decimal_to_str(self.total_price),
        }


class Payment(db.Model):
    """
    Payment recorded against a sale.

    Refunds flip status to "refunded" and stamp refunded_at/by; the row is
    kept so the payment history stays complete.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    reference_number = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    notes = db.Column(db.Text, nullable=True)

    processed_by = db.Column(db.Integer, nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_by = db.Column(db.Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment id={self.id} sale_id={self.sale_id} amount={self.amount} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "payment_method": self.payment_method,
            "amount": decimal_to_str(self.amount),
            "reference_number": self.reference_number,
            "status": self.status,
            "notes": self.notes,
            "processed_by": self.processed_by,
            "payment_date": to_utc_z(self.payment_date),
            "refunded_at": to_utc_z(self.refunded_at),
            "refunded_by": self.refunded_by,
        }
