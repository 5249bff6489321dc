"""Restaurant ordering database models.

These models describe the schema used by the ordering core. They are kept
isolated from any application wiring so that they can be used in tests or
migrations independently."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Restaurant(Base):
    """A tenant restaurant and its tax configuration."""

    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String, unique=True, nullable=False)
    restaurant_name = Column(String, nullable=False)
    owner_id = Column(String(36), nullable=False, index=True)
    address = Column(Text, nullable=True)
    is_currently_open = Column(Boolean, nullable=False, default=True)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_label = Column(String, nullable=True)
    is_tax_included_in_price = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RestaurantStaff(Base):
    """Membership of a staff user in a restaurant."""

    __tablename__ = "restaurant_staff"
    __table_args__ = (UniqueConstraint("restaurant_id", "user_id"),)

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    user_id = Column(String(36), nullable=False)


class Subscription(Base):
    """Plan held by a restaurant owner; consulted before accepting orders."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(36), unique=True, nullable=False)
    plan = Column(String, nullable=False, default="starter")
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)


class Table(Base):
    """Dining tables mapped to per-restaurant QR slugs."""

    __tablename__ = "tables"
    __table_args__ = (UniqueConstraint("restaurant_id", "qr_slug"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    table_name = Column(String, nullable=False)
    seat_count = Column(Integer, nullable=False, default=2)
    qr_slug = Column(String, nullable=False)
    is_occupied = Column(Boolean, nullable=False, default=False)
    # Plain column: orders reference tables, so a FK here would form a cycle.
    current_order_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class FoodItem(Base):
    """Menu entry; items with variants are priced per variant."""

    __tablename__ = "food_items"
    __table_args__ = (
        CheckConstraint(
            "discounted_price IS NULL OR discounted_price <= price",
            name="ck_food_items_discount_le_price",
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    food_name = Column(String, nullable=False)
    food_type = Column(String, nullable=False, default="veg")
    price = Column(Numeric(10, 2), nullable=False)
    discounted_price = Column(Numeric(10, 2), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    has_variants = Column(Boolean, nullable=False, default=False)
    image_urls = Column(JSON, nullable=False, default=list)

    variants = relationship(
        "FoodVariant",
        lazy="selectin",
        order_by="FoodVariant.id",
        cascade="all, delete-orphan",
    )


class FoodVariant(Base):
    """Named sub-option of a food item with its own price and availability."""

    __tablename__ = "food_variants"
    __table_args__ = (
        UniqueConstraint("food_item_id", "variant_name"),
        CheckConstraint(
            "discounted_price IS NULL OR discounted_price <= price",
            name="ck_food_variants_discount_le_price",
        ),
    )

    id = Column(Integer, primary_key=True)
    food_item_id = Column(String(36), ForeignKey("food_items.id"), nullable=False)
    variant_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    discounted_price = Column(Numeric(10, 2), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)


class OrderNoCounter(Base):
    """Per-restaurant order number sequence.

    The only source of order numbers; incremented atomically by
    :func:`tableorder.app.utils.order_counter.next_order_no`.
    """

    __tablename__ = "order_no_counters"

    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), primary_key=True)
    order_no = Column(Integer, nullable=False, default=0)


class Order(Base):
    """Dine-in order placed from a table."""

    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("restaurant_id", "order_no"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    # Nullable only for legacy rows awaiting ``scripts/backfill_order_no.py``.
    order_no = Column(Integer, nullable=True)
    restaurant_id = Column(
        String(36), ForeignKey("restaurants.id"), nullable=False, index=True
    )
    table_id = Column(String(36), ForeignKey("tables.id"), nullable=False)
    status = Column(String, nullable=False, default="pending")
    is_paid = Column(Boolean, nullable=False, default=False)
    payment_method = Column(String, nullable=False)
    kitchen_staff_id = Column(String(36), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    customer_name = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    refund_required = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now)

    items = relationship(
        "OrderItem",
        lazy="selectin",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    payment_attempts = relationship(
        "Payment",
        lazy="selectin",
        order_by=lambda: [Payment.created_at, Payment.id],
    )


class OrderItem(Base):
    """Line items belonging to an order with price snapshots."""

    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_order_items_qty"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    food_item_id = Column(String(36), ForeignKey("food_items.id"), nullable=False)
    variant_name = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    final_price = Column(Numeric(10, 2), nullable=False)


class Payment(Base):
    """One attempt to collect money for an order."""

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    method = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    tip_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_gateway = Column(String, nullable=True)
    gateway_order_id = Column(String, nullable=True, index=True)
    gateway_payment_id = Column(String, nullable=True)
    transaction_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now)


__all__ = [
    "Base",
    "Restaurant",
    "RestaurantStaff",
    "Subscription",
    "Table",
    "FoodItem",
    "FoodVariant",
    "OrderNoCounter",
    "Order",
    "OrderItem",
    "Payment",
]
