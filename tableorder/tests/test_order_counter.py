import anyio
import pytest
from sqlalchemy import select

from tableorder.app.db import build_sessionmaker
from tableorder.app.domain import PaymentMethod
from tableorder.app.menu import LineRequest
from tableorder.app.models_tenant import OrderNoCounter
from tableorder.app.services.notifier import RecordingNotifier
from tableorder.app.services.orders import OrderService
from tableorder.app.utils.order_counter import next_order_no, set_order_no
from tableorder.tests._seed import RESTAURANT_ID, SLUG, FakeGateway, seed_restaurant


@pytest.mark.anyio
async def test_counter_starts_at_one_and_increments(seeded):
    async with seeded() as session:
        async with session.begin():
            assert await next_order_no(session, RESTAURANT_ID) == 1
            assert await next_order_no(session, RESTAURANT_ID) == 2
            assert await next_order_no(session, "rest-other") == 1


@pytest.mark.anyio
async def test_counter_increment_rolls_back_with_transaction(seeded):
    with pytest.raises(RuntimeError):
        async with seeded() as session:
            async with session.begin():
                assert await next_order_no(session, RESTAURANT_ID) == 1
                raise RuntimeError("abort")

    async with seeded() as session:
        async with session.begin():
            assert await next_order_no(session, RESTAURANT_ID) == 1


@pytest.mark.anyio
async def test_set_order_no_never_moves_backwards(seeded):
    async with seeded() as session:
        async with session.begin():
            await set_order_no(session, RESTAURANT_ID, 7)
            await set_order_no(session, RESTAURANT_ID, 3)
        counter = await session.get(OrderNoCounter, RESTAURANT_ID)
        assert counter.order_no == 7


@pytest.mark.anyio
async def test_concurrent_orders_get_distinct_increasing_numbers(file_engine, settings):
    factory = build_sessionmaker(file_engine)
    await seed_restaurant(factory, tables=8)
    service = OrderService(factory, FakeGateway(), RecordingNotifier(), settings)
    numbers: list[int] = []

    async def place(n: int) -> None:
        result = await service.create_order(
            SLUG, f"t{n}", [LineRequest("item-paneer", 1)], PaymentMethod.CASH
        )
        numbers.append(result["order"]["orderNo"])

    async with anyio.create_task_group() as tg:
        for n in range(1, 9):
            tg.start_soon(place, n)

    assert sorted(numbers) == list(range(1, 9))
    async with factory() as session:
        counter = await session.scalar(
            select(OrderNoCounter.order_no).where(OrderNoCounter.restaurant_id == RESTAURANT_ID)
        )
    assert counter == 8
