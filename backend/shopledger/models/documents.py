from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import decimal_to_str


class DocumentSequence(db.Model):
    """
    Per-scope counters for human-readable document numbers.

    scope_id is the shop for sales and transfers, 0 for quotations.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("scope_id", "document_type", name="uq_document_sequences_scope_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    scope_id = db.Column(db.Integer, nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<DocumentSequence scope={self.scope_id} type={self.document_type} next={self.next_number}>"


class StockTransfer(db.Model):
    """
    Inter-shop movement of one product.

    A pending transfer reserves nothing; stock only moves when it completes,
    as a transfer_out entry at the source and a transfer_in entry at the
    destination in the same transaction.
    """
    __tablename__ = "stock_transfers"
    __table_args__ = (
        db.CheckConstraint("from_shop_id <> to_shop_id", name="ck_stock_transfers_distinct_shops"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    from_shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    to_shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    received_by = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    from_shop = db.relationship("Shop", foreign_keys=[from_shop_id])
    to_shop = db.relationship("Shop", foreign_keys=[to_shop_id])
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<StockTransfer id={self.id} number={self.transfer_number} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transfer_number": self.transfer_number,
            "from_shop_id": self.from_shop_id,
            "to_shop_id": self.to_shop_id,
            "product_id": self.product_id,
            "quantity": decimal_to_str(self.quantity),
            "status": self.status,
            "notes": self.notes,
            "created_by": self.created_by,
            "received_by": self.received_by,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
