"""Initial stock reconciliation schema

Revision ID: 20240601_initial_schema
Revises:
Create Date: 2024-06-01 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20240601_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("normalized_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("normalized_name", name="uq_products_normalized_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "stock_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("month", sa.Date(), nullable=False),
        sa.Column("warehouse", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("theoretical", sa.Float(), nullable=False),
        sa.Column("actual", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "warehouse", "month", name="uq_stock_snapshots_cell"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_snapshots_month", "stock_snapshots", ["month"], unique=False)
    op.create_index("ix_stock_snapshots_product_id", "stock_snapshots", ["product_id"], unique=False)
    op.create_index("ix_stock_snapshots_month_warehouse", "stock_snapshots", ["month", "warehouse"], unique=False)

    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column("from_wh", sa.String(length=64), nullable=False),
        sa.Column("to_wh", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Float(), nullable=False),
        sa.Column("user", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.CheckConstraint("from_wh <> to_wh", name="ck_transfers_distinct_warehouses"),
        sa.CheckConstraint("qty > 0", name="ck_transfers_positive_qty"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transfers_ts", "transfers", ["ts"], unique=False)
    op.create_index("ix_transfers_product_id", "transfers", ["product_id"], unique=False)


def downgrade():
    op.drop_index("ix_transfers_product_id", table_name="transfers")
    op.drop_index("ix_transfers_ts", table_name="transfers")
    op.drop_table("transfers")

    op.drop_index("ix_stock_snapshots_month_warehouse", table_name="stock_snapshots")
    op.drop_index("ix_stock_snapshots_product_id", table_name="stock_snapshots")
    op.drop_index("ix_stock_snapshots_month", table_name="stock_snapshots")
    op.drop_table("stock_snapshots")

    op.drop_table("products")
