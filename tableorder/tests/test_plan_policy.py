from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from tableorder.app.domain.errors import PlanLimitExceeded
from tableorder.app.models_tenant import Restaurant, Subscription
from tableorder.app.services.plan_policy import can_restaurant_receive_orders
from tableorder.tests._seed import RESTAURANT_ID, seed_restaurant

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


async def _check(factory, settings, now=NOW):
    async with factory() as session:
        restaurant = await session.get(Restaurant, RESTAURANT_ID)
        await can_restaurant_receive_orders(session, restaurant, settings, now=now)


@pytest.mark.anyio
async def test_unlimited_plan_accepts(session_factory, settings):
    await seed_restaurant(session_factory, plan="pro")
    await _check(session_factory, settings)


@pytest.mark.anyio
async def test_missing_subscription_blocks(session_factory, settings):
    await seed_restaurant(session_factory, subscription=False)
    with pytest.raises(PlanLimitExceeded):
        await _check(session_factory, settings)


@pytest.mark.anyio
async def test_inactive_subscription_blocks(session_factory, settings):
    await seed_restaurant(session_factory)
    async with session_factory() as session:
        async with session.begin():
            sub = await session.scalar(select(Subscription))
            sub.is_active = False
    with pytest.raises(PlanLimitExceeded):
        await _check(session_factory, settings)


@pytest.mark.anyio
@pytest.mark.parametrize("days_expired, allowed", [(3, True), (7, True), (8, False)])
async def test_grace_period_after_expiry(session_factory, settings, days_expired, allowed):
    await seed_restaurant(session_factory, expires_at=NOW - timedelta(days=days_expired))
    if allowed:
        await _check(session_factory, settings)
    else:
        with pytest.raises(PlanLimitExceeded):
            await _check(session_factory, settings)
