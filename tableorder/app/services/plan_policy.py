"""Decide whether a restaurant's plan lets it accept another order."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings

from ..domain.errors import PlanLimitExceeded
from ..models_tenant import Order, Restaurant, Subscription


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def can_restaurant_receive_orders(
    session: AsyncSession,
    restaurant: Restaurant,
    settings: Settings,
    now: datetime | None = None,
) -> None:
    """Raise :class:`PlanLimitExceeded` unless ``restaurant`` may take an order.

    The owner's subscription must be active and not expired beyond the grace
    period, and the plan's daily order limit (if any) must not be reached.
    """

    now = now or datetime.now(timezone.utc)
    sub = await session.scalar(
        select(Subscription).where(Subscription.owner_id == restaurant.owner_id)
    )
    if sub is None or not sub.is_active:
        raise PlanLimitExceeded("This restaurant is not accepting orders right now")
    if sub.expires_at is not None:
        grace = timedelta(days=settings.subscription_grace_days)
        if now > _aware(sub.expires_at) + grace:
            raise PlanLimitExceeded("This restaurant is not accepting orders right now")

    limit = settings.plan_daily_order_limits.get(sub.plan)
    if limit is None:
        return
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    placed_today = await session.scalar(
        select(func.count(Order.id)).where(
            Order.restaurant_id == restaurant.id, Order.created_at >= day_start
        )
    )
    if (placed_today or 0) >= limit:
        raise PlanLimitExceeded(
            "This restaurant has reached its daily order limit for the current plan"
        )


__all__ = ["can_restaurant_receive_orders"]
