"""Initial stock ledger schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, default=None):
    kwargs = {"nullable": nullable}
    if default is not None:
        kwargs["server_default"] = default
    return sa.Column(name, sa.Numeric(10, 2), **kwargs)


def upgrade():
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_shops_status", "shops", ["status"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), nullable=True, unique=True),
        sa.Column("barcode", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _money("default_min_stock_level", default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_status", "products", ["status"])

    op.create_table(
        "stock",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        _money("quantity", default="0"),
        _money("min_stock_level", default="0"),
        _money("max_stock_level", default="0"),
        _money("buy_price", nullable=True),
        _money("sale_price", nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("shop_id", "product_id", name="uq_stock_shop_product"),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_shop_id", "stock", ["shop_id"])
    op.create_index("ix_stock_product_id", "stock", ["product_id"])

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        _money("quantity"),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_transactions_shop_product", "stock_transactions", ["shop_id", "product_id"])
    op.create_index("ix_stock_transactions_reference", "stock_transactions", ["reference_type", "reference_id"])
    op.create_index("ix_stock_transactions_transaction_type", "stock_transactions", ["transaction_type"])
    op.create_index("ix_stock_transactions_created_by", "stock_transactions", ["created_by"])
    op.create_index("ix_stock_transactions_created_at", "stock_transactions", ["created_at"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("scope_id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("scope_id", "document_type", name="uq_document_sequences_scope_type"),
    )
    op.create_index("ix_document_sequences_scope_id", "document_sequences", ["scope_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_number", sa.String(64), nullable=False),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        _money("subtotal", default="0"),
        _money("tax_amount", default="0"),
        _money("discount_amount", default="0"),
        _money("total_amount", default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_sale_number", "sales", ["sale_number"], unique=True)
    op.create_index("ix_sales_shop_id", "sales", ["shop_id"])
    op.create_index("ix_sales_status", "sales", ["status"])
    op.create_index("ix_sales_created_by", "sales", ["created_by"])
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False, server_default="1"),
        _money("quantity"),
        _money("unit_price"),
        _money("discount", default="0"),
        _money("total_price"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False),
        _money("amount"),
        sa.Column("reference_number", sa.String(128), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_by", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_payments_sale_id", "payments", ["sale_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_payment_date", "payments", ["payment_date"])

    op.create_table(
        "stock_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transfer_number", sa.String(64), nullable=False),
        sa.Column("from_shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("to_shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        _money("quantity"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("received_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("from_shop_id <> to_shop_id", name="ck_stock_transfers_distinct_shops"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_transfers_transfer_number", "stock_transfers", ["transfer_number"], unique=True)
    op.create_index("ix_stock_transfers_from_shop_id", "stock_transfers", ["from_shop_id"])
    op.create_index("ix_stock_transfers_to_shop_id", "stock_transfers", ["to_shop_id"])
    op.create_index("ix_stock_transfers_product_id", "stock_transfers", ["product_id"])
    op.create_index("ix_stock_transfers_status", "stock_transfers", ["status"])

    op.create_table(
        "quotations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quotation_number", sa.String(64), nullable=False),
        sa.Column("supplier_name", sa.String(255), nullable=False),
        sa.Column("supplier_email", sa.String(255), nullable=True),
        sa.Column("supplier_phone", sa.String(50), nullable=True),
        sa.Column("supplier_address", sa.Text(), nullable=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id"), nullable=True),
        _money("subtotal", default="0"),
        _money("tax_amount", default="0"),
        _money("discount_amount", default="0"),
        _money("total_amount", default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("quotation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_quotations_quotation_number", "quotations", ["quotation_number"], unique=True)
    op.create_index("ix_quotations_shop_id", "quotations", ["shop_id"])
    op.create_index("ix_quotations_status", "quotations", ["status"])
    op.create_index("ix_quotations_deleted_at", "quotations", ["deleted_at"])

    op.create_table(
        "quotation_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("quotation_id", sa.Integer(), sa.ForeignKey("quotations.id"), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sku", sa.String(100), nullable=True),
        _money("quantity"),
        _money("unit_price"),
        _money("discount", default="0"),
        _money("total_price"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_quotation_items_quotation_id", "quotation_items", ["quotation_id"])


def downgrade():
    op.drop_table("quotation_items")
    op.drop_table("quotations")
    op.drop_table("stock_transfers")
    op.drop_table("payments")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("document_sequences")
    op.drop_table("stock_transactions")
    op.drop_table("stock")
    op.drop_table("products")
    op.drop_table("shops")
