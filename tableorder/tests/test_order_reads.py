from datetime import date, datetime, timezone

import pytest

from tableorder.app.domain import Actor, OrderStatus, PaymentMethod, Role
from tableorder.app.domain.errors import AuthorizationError, NotFoundError, ValidationError
from tableorder.app.menu import LineRequest
from tableorder.app.services.orders import OrderFilters, date_window
from tableorder.tests._seed import OWNER_ID, SLUG, STAFF_ID

STAFF = Actor(STAFF_ID, Role.STAFF)
OWNER = Actor(OWNER_ID, Role.OWNER)


@pytest.fixture
async def two_orders(seeded, service):
    first = await service.create_order(
        SLUG,
        "t1",
        [LineRequest("item-paneer", 1)],
        PaymentMethod.CASH,
        customer_name="Ravi",
        customer_phone="9876543210",
    )
    second = await service.create_order(
        SLUG, "t2", [LineRequest("item-lassi", 2)], PaymentMethod.ONLINE, notes="no ice"
    )
    await service.update_status(SLUG, first["order"]["id"], STAFF, OrderStatus.PREPARING)
    return first["order"]["id"], second["order"]["id"]


@pytest.mark.anyio
async def test_list_paginates_and_hides_contact_details(two_orders, service):
    data = await service.list_orders(SLUG, STAFF, OrderFilters(limit=1))
    assert data["totalOrders"] == 2
    assert data["totalPages"] == 2
    assert data["page"] == 1
    assert len(data["orders"]) == 1
    row = data["orders"][0]
    assert "customerName" not in row
    assert "customerPhone" not in row
    assert row["table"]["tableName"] in {"Table 1", "Table 2"}


@pytest.mark.anyio
async def test_list_filters(two_orders, service):
    first_id, second_id = two_orders

    data = await service.list_orders(SLUG, OWNER, OrderFilters(status=[OrderStatus.PREPARING]))
    assert [o["id"] for o in data["orders"]] == [first_id]

    data = await service.list_orders(SLUG, STAFF, OrderFilters(is_paid=False, date="today"))
    assert data["totalOrders"] == 2

    data = await service.list_orders(SLUG, STAFF, OrderFilters(date="yesterday"))
    assert data["totalOrders"] == 0


@pytest.mark.anyio
@pytest.mark.parametrize(
    "term, expected",
    [("lassi", "second"), ("Table 1", "first"), ("no ice", "second"), ("ravi", "first")],
)
async def test_list_search(two_orders, service, term, expected):
    first_id, second_id = two_orders
    data = await service.list_orders(SLUG, STAFF, OrderFilters(search=term))
    wanted = first_id if expected == "first" else second_id
    assert [o["id"] for o in data["orders"]] == [wanted]


@pytest.mark.anyio
@pytest.mark.parametrize("term", ["%", "_", "no%ice", "Table_1"])
async def test_list_search_treats_wildcards_literally(two_orders, service, term):
    data = await service.list_orders(SLUG, STAFF, OrderFilters(search=term))
    assert data["totalOrders"] == 0
    assert data["orders"] == []


@pytest.mark.anyio
async def test_list_sorts_by_order_number(two_orders, service):
    data = await service.list_orders(SLUG, STAFF, OrderFilters(sort_by="orderNo", sort_type="asc"))
    assert [o["orderNo"] for o in data["orders"]] == [1, 2]
    with pytest.raises(ValidationError):
        await service.list_orders(SLUG, STAFF, OrderFilters(sort_by="customerPhone"))


@pytest.mark.anyio
async def test_list_requires_membership(two_orders, service):
    with pytest.raises(AuthorizationError):
        await service.list_orders(SLUG, Actor("stranger", Role.STAFF), OrderFilters())


@pytest.mark.anyio
async def test_get_order_includes_tax_setup(two_orders, service):
    first_id, _ = two_orders
    data = await service.get_order(SLUG, first_id)
    assert data["customerName"] == "Ravi"
    assert data["restaurant"]["taxRate"] == 5
    assert data["restaurant"]["taxLabel"] == "GST"
    assert data["table"]["id"] == "table-1"
    with pytest.raises(NotFoundError):
        await service.get_order(SLUG, "missing")


@pytest.mark.anyio
async def test_get_orders_by_ids(two_orders, service):
    first_id, second_id = two_orders
    data = await service.get_orders_by_ids(SLUG, [first_id, " ", second_id, "unknown"])
    assert {o["id"] for o in data} == {first_id, second_id}
    online = next(o for o in data if o["id"] == second_id)
    assert online["paymentAttempts"][0]["status"] == "pending"

    assert len(await service.get_orders_by_ids(SLUG, [first_id, second_id], limit=1)) == 1
    with pytest.raises(ValidationError):
        await service.get_orders_by_ids(SLUG, ["", " "])
    with pytest.raises(ValidationError):
        await service.get_orders_by_ids(SLUG, [first_id], limit=21)


@pytest.mark.anyio
async def test_current_table_order(two_orders, service):
    first_id, _ = two_orders
    data = await service.get_table_order(SLUG, "t1", STAFF)
    assert data["id"] == first_id
    await service.update_status(SLUG, first_id, STAFF, OrderStatus.CANCELLED)
    with pytest.raises(NotFoundError):
        await service.get_table_order(SLUG, "t1", STAFF)


def test_date_window_boundaries():
    today = date(2026, 3, 10)
    start, end = date_window(OrderFilters(date="today"), today)
    assert start == datetime(2026, 3, 10, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 11, tzinfo=timezone.utc)

    start, end = date_window(OrderFilters(date_from="2026-03-01", date_to="2026-03-05"), today)
    assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 6, tzinfo=timezone.utc)

    assert date_window(OrderFilters(), today) == (None, None)
    with pytest.raises(ValidationError):
        date_window(OrderFilters(date="10/03/2026"), today)
