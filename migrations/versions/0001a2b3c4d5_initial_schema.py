"""initial schema: accounts, cash history, materials, products, transactions

Revision ID: 0001a2b3c4d5
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001a2b3c4d5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy persists enum member names
account_type = sa.Enum("ASET", "KEWAJIBAN", "MODAL", "PENDAPATAN", "BEBAN", name="accounttype")
material_type = sa.Enum("STOCK", "BELI", "JASA", name="materialtype")
movement_type = sa.Enum("IN", "OUT", "ADJUSTMENT", name="movementtype")
movement_reason = sa.Enum(
    "PURCHASE", "PRODUCTION_CONSUMPTION", "PRODUCTION_ACQUISITION", "ADJUSTMENT", "RETURN",
    name="movementreason",
)
payment_status = sa.Enum("LUNAS", "BELUM_LUNAS", "KREDIT", name="paymentstatus")
transaction_status = sa.Enum(
    "PESANAN_MASUK", "PROSES_DESIGN", "ACC_COSTUMER", "PROSES_PRODUKSI", "PESANAN_SELESAI", "DIBATALKAN",
    name="transactionstatus",
)
purchase_order_status = sa.Enum("PENDING", "APPROVED", "REJECTED", "DIBAYAR", "SELESAI", name="purchaseorderstatus")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", account_type, nullable=False),
        sa.Column("balance", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("initial_balance", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("is_payment_account", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "cash_history",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("account_id", sa.String(length=20), nullable=True),
        sa.Column("account_name", sa.String(length=100), nullable=True),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reference_number", sa.String(length=60), nullable=True),
        sa.Column("reference_id", sa.String(length=40), nullable=True),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("transaction_type", sa.String(length=20), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=True),
        sa.Column("source_type", sa.String(length=40), nullable=True),
        sa.Column("category", sa.String(length=20), nullable=True),
        sa.Column("created_by", sa.String(length=40), nullable=True),
        sa.Column("created_by_name", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cash_history_account_id", "cash_history", ["account_id"])
    op.create_index("ix_cash_history_reference_number", "cash_history", ["reference_number"])
    op.create_index("ix_cash_history_reference_id", "cash_history", ["reference_id"])
    op.create_index("ix_cash_history_category", "cash_history", ["category"])
    op.create_index("ix_cash_history_created_at", "cash_history", ["created_at"])

    op.create_table(
        "materials",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", material_type, nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("stock", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("min_stock", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "material_stock_movements",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("material_id", sa.String(length=20), nullable=False),
        sa.Column("material_name", sa.String(length=100), nullable=False),
        sa.Column("type", movement_type, nullable=False),
        sa.Column("reason", movement_reason, nullable=False),
        sa.Column("quantity", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("previous_stock", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("new_stock", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("reference_id", sa.String(length=40), nullable=True),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.String(length=40), nullable=True),
        sa.Column("user_name", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["material_id"], ["materials.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_material_stock_movements_material_id", "material_stock_movements", ["material_id"])
    op.create_index("ix_material_stock_movements_reference_id", "material_stock_movements", ["reference_id"])
    op.create_index("ix_material_stock_movements_created_at", "material_stock_movements", ["created_at"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("base_price", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "product_materials",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.String(length=20), nullable=False),
        sa.Column("material_id", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=15, scale=4), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["material_id"], ["materials.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "material_id", name="uq_product_material"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=30), nullable=False),
        sa.Column("customer_name", sa.String(length=150), nullable=False),
        sa.Column("cashier_id", sa.String(length=40), nullable=True),
        sa.Column("cashier_name", sa.String(length=100), nullable=True),
        sa.Column("payment_account_id", sa.String(length=20), nullable=True),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subtotal", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("total", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("status", transaction_status, nullable=False),
        sa.Column("materials_processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["payment_account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"])

    op.create_table(
        "transaction_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sa.String(length=30), nullable=False),
        sa.Column("product_id", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("price", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transaction_items_transaction_id", "transaction_items", ["transaction_id"])

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("material_id", sa.String(length=20), nullable=False),
        sa.Column("material_name", sa.String(length=100), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("requested_by", sa.String(length=100), nullable=False),
        sa.Column("status", purchase_order_status, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_cost", sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column("payment_account_id", sa.String(length=20), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["material_id"], ["materials.id"]),
        sa.ForeignKeyConstraint(["payment_account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("account_id", sa.String(length=20), nullable=True),
        sa.Column("account_name", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "employee_advances",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("employee_id", sa.String(length=40), nullable=False),
        sa.Column("employee_name", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("remaining_amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("account_id", sa.String(length=20), nullable=False),
        sa.Column("account_name", sa.String(length=100), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "advance_repayments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("advance_id", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recorded_by", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(["advance_id"], ["employee_advances.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("advance_repayments")
    op.drop_table("employee_advances")
    op.drop_table("expenses")
    op.drop_table("purchase_orders")
    op.drop_index("ix_transaction_items_transaction_id", table_name="transaction_items")
    op.drop_table("transaction_items")
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("product_materials")
    op.drop_table("products")
    op.drop_index("ix_material_stock_movements_created_at", table_name="material_stock_movements")
    op.drop_index("ix_material_stock_movements_reference_id", table_name="material_stock_movements")
    op.drop_index("ix_material_stock_movements_material_id", table_name="material_stock_movements")
    op.drop_table("material_stock_movements")
    op.drop_table("materials")
    for name in ("created_at", "category", "reference_id", "reference_number", "account_id"):
        op.drop_index(f"ix_cash_history_{name}", table_name="cash_history")
    op.drop_table("cash_history")
    op.drop_table("accounts")

    bind = op.get_bind()
    for enum_type in (
        purchase_order_status, transaction_status, payment_status,
        movement_reason, movement_type, material_type, account_type,
    ):
        enum_type.drop(bind, checkfirst=True)
