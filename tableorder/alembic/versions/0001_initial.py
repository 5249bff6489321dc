"""initial ordering schema

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _timestamps(*, updated: bool = False) -> list[sa.Column]:
    cols = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        )
    ]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return cols


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(10, 2), nullable=False, server_default="0")


def upgrade() -> None:
    """Create restaurants, menu, tables, orders, payments and counters."""

    op.create_table(
        "restaurants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("restaurant_name", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(36), nullable=False, index=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_currently_open", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tax_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("tax_label", sa.String(), nullable=True),
        sa.Column(
            "is_tax_included_in_price", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
    )

    op.create_table(
        "restaurant_staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.UniqueConstraint("restaurant_id", "user_id"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(36), nullable=False, unique=True),
        sa.Column("plan", sa.String(), nullable=False, server_default="starter"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "tables",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("table_name", sa.String(), nullable=False),
        sa.Column("seat_count", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("qr_slug", sa.String(), nullable=False),
        sa.Column("is_occupied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_order_id", sa.String(36), nullable=True, index=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("restaurant_id", "qr_slug"),
    )

    op.create_table(
        "food_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("food_name", sa.String(), nullable=False),
        sa.Column("food_type", sa.String(), nullable=False, server_default="veg"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discounted_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("has_variants", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.CheckConstraint(
            "discounted_price IS NULL OR discounted_price <= price",
            name="ck_food_items_discount_le_price",
        ),
    )

    op.create_table(
        "food_variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("food_item_id", sa.String(36), sa.ForeignKey("food_items.id"), nullable=False),
        sa.Column("variant_name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discounted_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("food_item_id", "variant_name"),
        sa.CheckConstraint(
            "discounted_price IS NULL OR discounted_price <= price",
            name="ck_food_variants_discount_le_price",
        ),
    )

    op.create_table(
        "order_no_counters",
        sa.Column(
            "restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id"), primary_key=True
        ),
        sa.Column("order_no", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("order_no", sa.Integer(), nullable=True),
        sa.Column(
            "restaurant_id",
            sa.String(36),
            sa.ForeignKey("restaurants.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("table_id", sa.String(36), sa.ForeignKey("tables.id"), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("kitchen_staff_id", sa.String(36), nullable=True),
        _money("subtotal"),
        _money("tax_amount"),
        _money("discount_amount"),
        _money("total_amount"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=True),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("refund_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=True),
        sa.UniqueConstraint("restaurant_id", "order_no"),
    )

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "order_id", sa.String(36), sa.ForeignKey("orders.id"), nullable=False, index=True
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("food_item_id", sa.String(36), sa.ForeignKey("food_items.id"), nullable=False),
        sa.Column("variant_name", sa.String(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("final_price", sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_order_items_qty"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_id", sa.String(36), sa.ForeignKey("orders.id"), nullable=False, index=True
        ),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        _money("subtotal"),
        _money("tax_amount"),
        _money("discount_amount"),
        _money("tip_amount"),
        _money("total_amount"),
        sa.Column("payment_gateway", sa.String(), nullable=True),
        sa.Column("gateway_order_id", sa.String(), nullable=True, index=True),
        sa.Column("gateway_payment_id", sa.String(), nullable=True),
        sa.Column("transaction_id", sa.String(), nullable=True),
        *_timestamps(updated=True),
    )


def downgrade() -> None:
    for name in (
        "payments",
        "order_items",
        "orders",
        "order_no_counters",
        "food_variants",
        "food_items",
        "tables",
        "subscriptions",
        "restaurant_staff",
        "restaurants",
    ):
        op.drop_table(name)
