"""initial purchasing schema

Revision ID: 0001_initial_purchasing
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_purchasing"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("pharmacy_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_price", sa.Numeric(10, 2), nullable=False, server_default="0.00"),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_products_pharmacy", "products", ["pharmacy_id"])

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("pharmacy_id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(20), nullable=False, unique=True),
        sa.Column("supplier_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="DRAFT"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_cost", sa.Numeric(10, 2), nullable=False, server_default="0.00"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("total_cost >= 0", name="chk_po_total_cost"),
    )
    op.create_index("idx_po_pharmacy", "purchase_orders", ["pharmacy_id"])
    op.create_index("idx_po_status", "purchase_orders", ["status"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "purchase_order_id",
            sa.Uuid(),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("received_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="chk_po_line_qty"),
        sa.CheckConstraint("received_quantity >= 0", name="chk_po_line_received_qty"),
        sa.CheckConstraint("unit_cost IS NULL OR unit_cost >= 0", name="chk_po_line_unit_cost"),
        sa.UniqueConstraint("purchase_order_id", "line_number", name="uq_po_line_number"),
    )
    op.create_index("idx_po_lines_po", "purchase_order_lines", ["purchase_order_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("pharmacy_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_activity_pharmacy", "activity_logs", ["pharmacy_id"])
    op.create_index("idx_activity_created", "activity_logs", [sa.text("created_at DESC")])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("purchase_order_lines")
    op.drop_table("purchase_orders")
    op.drop_table("products")
