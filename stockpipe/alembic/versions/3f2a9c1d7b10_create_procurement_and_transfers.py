"""create procurement and transfer tables

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PO_STATUSES = ("draft", "submitted", "approved", "in_progress", "shipped", "complete", "cancelled")
TRANSFER_KINDS = ("in", "move", "out")


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("uom", sa.String(length=32), nullable=False, server_default="unit"),
    )
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("po_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("supplier_id", sa.BigInteger(), sa.ForeignKey("suppliers.id", ondelete="RESTRICT")),
        sa.Column(
            "status",
            sa.Enum(*PO_STATUSES, name="po_status", native_enum=False),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_purchase_orders_owner_id", "purchase_orders", ["owner_id"])
    op.create_index("ix_purchase_orders_owner_status", "purchase_orders", ["owner_id", "status"])

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("po_id", sa.BigInteger(), sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("products.id", ondelete="RESTRICT")),
        sa.Column("qty_ordered", sa.Integer(), nullable=False),
        sa.CheckConstraint("qty_ordered > 0", name="ck_po_line_qty_pos"),
    )
    op.create_index("ix_purchase_order_lines_po_id", "purchase_order_lines", ["po_id"])

    op.create_table(
        "transfers",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("transfer_number", sa.String(length=64)),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.Enum(*TRANSFER_KINDS, name="transfer_kind", native_enum=False), nullable=False),
        sa.Column(
            "purchase_order_id",
            sa.BigInteger(),
            sa.ForeignKey("purchase_orders.id", ondelete="SET NULL"),
        ),
        sa.Column("from_location", sa.String(length=255)),
        sa.Column("to_location", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_transfers_owner_id", "transfers", ["owner_id"])
    op.create_index("ix_transfers_owner_created", "transfers", ["owner_id", "created_at"])

    op.create_table(
        "transfer_lines",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("transfer_id", sa.BigInteger(), sa.ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sku", sa.String(length=64)),
        sa.Column("product_name", sa.String(length=255)),
        sa.Column("quantity", sa.Integer()),
        sa.Column("unit", sa.String(length=32)),
    )
    op.create_index("ix_transfer_lines_transfer_id", "transfer_lines", ["transfer_id"])


def downgrade() -> None:
    op.drop_index("ix_transfer_lines_transfer_id", table_name="transfer_lines")
    op.drop_table("transfer_lines")
    op.drop_index("ix_transfers_owner_created", table_name="transfers")
    op.drop_index("ix_transfers_owner_id", table_name="transfers")
    op.drop_table("transfers")
    op.drop_index("ix_purchase_order_lines_po_id", table_name="purchase_order_lines")
    op.drop_table("purchase_order_lines")
    op.drop_index("ix_purchase_orders_owner_status", table_name="purchase_orders")
    op.drop_index("ix_purchase_orders_owner_id", table_name="purchase_orders")
    op.drop_table("purchase_orders")
    op.drop_table("products")
    op.drop_table("suppliers")
