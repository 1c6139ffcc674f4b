from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import decimal_to_str


class Quotation(db.Model):
    """
    Supplier quotation.

    Items are free text (not linked to products) and never move stock.
    Deletion is soft: deleted_at hides the row from every read.
    """
    __tablename__ = "quotations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    quotation_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    supplier_name = db.Column(db.String(255), nullable=False)
    supplier_email = db.Column(db.String(255), nullable=True)
    supplier_phone = db.Column(db.String(50), nullable=True)
    supplier_address = db.Column(db.Text, nullable=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    valid_until = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    quotation_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=utcnow)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    items = db.relationship(
        "QuotationItem",
        backref="quotation",
        lazy=True,
        order_by="QuotationItem.line_number",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Quotation id={self.id} number={self.quotation_number} status={self.status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "quotation_number": self.quotation_number,
            "supplier_name": self.supplier_name,
            "supplier_email": self.supplier_email,
            "supplier_phone": self.supplier_phone,
            "supplier_address": self.supplier_address,
            "shop_id": self.shop_id,
            "subtotal": decimal_to_str(self.subtotal),
            "tax_amount": decimal_to_str(self.tax_amount),
            "discount_amount": decimal_to_str(self.discount_amount),
            "total_amount": decimal_to_str(self.total_amount),
            "status": self.status,
            "valid_until": self.valid_until.isoformat() if self.valid_until else None,
            "notes": self.notes,
            "created_by": self.created_by,
            "quotation_date": to_utc_z(self.quotation_date),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class QuotationItem(db.Model):
    __tablename__ = "quotation_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotations.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False, default=1)

    item_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(100), nullable=True)

    quantity = db.Column(db.Numeric(10, 2), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "item_name": self.item_name,
            "description": self.description,
            "sku": self.sku,
            "quantity": decimal_to_str(self.quantity),
            "unit_price": decimal_to_str(self.unit_price),
            "discount": decimal_to_str(self.discount),
            "total_price": decimal_to_str(self.total_price),
        }
