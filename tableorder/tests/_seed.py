"""Seed data and collaborator doubles shared by the ordering tests."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from tableorder.app.models_tenant import (
    FoodItem,
    FoodVariant,
    Restaurant,
    RestaurantStaff,
    Subscription,
    Table,
)
from tableorder.app.providers import GatewayError, GatewayOrder

RESTAURANT_ID = "rest-1"
SLUG = "spice-route"
OWNER_ID = "owner-1"
STAFF_ID = "staff-1"
OTHER_STAFF_ID = "staff-2"

class FakeGateway:
    """Payment gateway double recording every remote order request."""

    name = "Razorpay"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    async def create_remote_order(self, amount_minor_units, currency, receipt_id, metadata):
        self.calls.append(
            {
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt_id,
                "notes": dict(metadata),
            }
        )
        if self.fail:
            raise GatewayError("gateway unavailable")
        order_id = f"order_test_{len(self.calls)}"
        return GatewayOrder(
            gateway_order_id=order_id,
            amount=amount_minor_units,
            currency=currency,
            receipt=receipt_id,
            raw={
                "id": order_id,
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt_id,
                "notes": dict(metadata),
            },
        )

class FailingNotifier:
    async def emit(self, room, event, payload):
        raise ConnectionError("socket gateway down")

async def seed_restaurant(
    session_factory,
    *,
    tables: int = 2,
    plan: str = "pro",
    is_open: bool = True,
    tax_rate: str = "5",
    tax_included: bool = False,
    subscription: bool = True,
    expires_at: datetime | None = None,
) -> None:
    """Create one restaurant with staff, tables and a small menu."""

    async with session_factory() as session:
        async with session.begin():
            session.add(
                Restaurant(
                    id=RESTAURANT_ID,
                    slug=SLUG,
                    restaurant_name="Spice Route",
                    owner_id=OWNER_ID,
                    is_currently_open=is_open,
                    tax_rate=Decimal(tax_rate),
                    tax_label="GST",
                    is_tax_included_in_price=tax_included,
                    created_at=datetime.now(timezone.utc),
                )
            )
            await session.flush()
            session.add_all(
                [
                    RestaurantStaff(restaurant_id=RESTAURANT_ID, user_id=STAFF_ID),
                    RestaurantStaff(restaurant_id=RESTAURANT_ID, user_id=OTHER_STAFF_ID),
                ]
            )
            if subscription:
                session.add(
                    Subscription(
                        owner_id=OWNER_ID, plan=plan, is_active=True, expires_at=expires_at
                    )
                )
            for n in range(1, tables + 1):
                session.add(
                    Table(
                        id=f"table-{n}",
                        restaurant_id=RESTAURANT_ID,
                        table_name=f"Table {n}",
                        seat_count=4,
                        qr_slug=f"t{n}",
                    )
                )
            session.add_all(
                [
                    FoodItem(
                        id="item-paneer",
                        restaurant_id=RESTAURANT_ID,
                        food_name="Paneer Tikka",
                        food_type="veg",
                        price=Decimal("100"),
                        image_urls=[],
                    ),
                    FoodItem(
                        id="item-lassi",
                        restaurant_id=RESTAURANT_ID,
                        food_name="Mango Lassi",
                        food_type="veg",
                        price=Decimal("60"),
                        discounted_price=Decimal("50"),
                        image_urls=[],
                    ),
                    FoodItem(
                        id="item-soup",
                        restaurant_id=RESTAURANT_ID,
                        food_name="Tomato Soup",
                        food_type="veg",
                        price=Decimal("80"),
                        is_available=False,
                        image_urls=[],
                    ),
                    FoodItem(
                        id="item-pizza",
                        restaurant_id=RESTAURANT_ID,
                        food_name="Chicken Pizza",
                        food_type="non-veg",
                        price=Decimal("200"),
                        has_variants=True,
                        image_urls=[],
                        variants=[
                            FoodVariant(
                                variant_name="small",
                                description="8 inch",
                                price=Decimal("200"),
                                discounted_price=Decimal("180"),
                            ),
                            FoodVariant(
                                variant_name="large",
                                description="12 inch",
                                price=Decimal("300"),
                                is_available=False,
                            ),
                        ],
                    ),
                ]
            )

def staff_headers(user_id: str = STAFF_ID) -> dict:
    return {"X-User-ID": user_id, "X-User-Role": "staff"}

def owner_headers() -> dict:
    return {"X-User-ID": OWNER_ID, "X-User-Role": "owner"}
