"""Order orchestration.

:class:`OrderService` composes menu validation, pricing, order numbering,
table occupancy, the status state machine and payments. Every write runs
through :func:`run_in_transaction`, so an operation either applies fully or
not at all. Real-time events are emitted only after the commit.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import asc, case, desc, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings

from ..db.transaction import run_in_transaction
from ..domain import (
    EDITABLE_STATUSES,
    STATUS_RANK,
    Actor,
    OrderStatus,
    PaymentMethod,
)
from ..domain.errors import (
    AuthorizationError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from ..menu import LineRequest, ResolvedLine, resolve_lines
from ..models_tenant import (
    FoodItem,
    Order,
    OrderItem,
    Restaurant,
    RestaurantStaff,
    Table,
)
from ..pricing import TaxConfig, price_lines
from ..providers import PaymentGateway
from ..routes_metrics import order_transitions_total, orders_created_total
from ..utils.order_counter import next_order_no
from . import order_state, payments, table_occupancy
from .notifier import Notifier, emit_safely, order_room, owner_room, staff_room
from .plan_policy import can_restaurant_receive_orders

logger = logging.getLogger("tableorder.orders")

MAX_ORDERS_BY_IDS = 20
SORTABLE_FIELDS = {
    "createdAt": Order.created_at,
    "updatedAt": Order.updated_at,
    "orderNo": Order.order_no,
    "totalAmount": Order.total_amount,
    "status": Order.status,
}


# ---------------------------------------------------------------------------
# serialization
# ---------------------------------------------------------------------------


def _money(value) -> float:
    return float(value or 0)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_table(table: Table) -> Dict[str, Any]:
    return {
        "id": table.id,
        "tableName": table.table_name,
        "qrSlug": table.qr_slug,
        "isOccupied": table.is_occupied,
    }


def serialize_payment(payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "method": payment.method,
        "status": payment.status,
        "subtotal": _money(payment.subtotal),
        "taxAmount": _money(payment.tax_amount),
        "discountAmount": _money(payment.discount_amount),
        "tipAmount": _money(payment.tip_amount),
        "totalAmount": _money(payment.total_amount),
        "paymentGateway": payment.payment_gateway,
        "gatewayOrderId": payment.gateway_order_id,
        "gatewayPaymentId": payment.gateway_payment_id,
        "transactionId": payment.transaction_id,
    }


def _serialize_line(item: OrderItem, food: Optional[FoodItem]) -> Dict[str, Any]:
    variant = None
    if food is not None and item.variant_name:
        match = next(
            (v for v in food.variants if v.variant_name == item.variant_name), None
        )
        if match is not None:
            variant = {
                "variantName": match.variant_name,
                "description": match.description,
                "price": _money(match.price),
                "discountedPrice": (
                    _money(match.discounted_price)
                    if match.discounted_price is not None
                    else None
                ),
            }
    return {
        "foodItemId": item.food_item_id,
        "variantName": item.variant_name,
        "quantity": item.quantity,
        "price": _money(item.price),
        "finalPrice": _money(item.final_price),
        "foodName": food.food_name if food else None,
        "foodType": food.food_type if food else None,
        "isVariantOrder": variant is not None,
        "variantDetails": variant,
    }


def serialize_order(
    order: Order,
    *,
    table: Optional[Table] = None,
    foods: Optional[Dict[str, FoodItem]] = None,
    include_pii: bool = True,
) -> Dict[str, Any]:
    """Render ``order`` with camelCase keys.

    ``foods`` resolves line items to their menu names; ``include_pii=False``
    drops the customer's name and phone.
    """

    foods = foods or {}
    data: Dict[str, Any] = {
        "id": order.id,
        "orderNo": order.order_no,
        "restaurantId": order.restaurant_id,
        "tableId": order.table_id,
        "status": order.status,
        "isPaid": order.is_paid,
        "paymentMethod": order.payment_method,
        "kitchenStaffId": order.kitchen_staff_id,
        "subtotal": _money(order.subtotal),
        "taxAmount": _money(order.tax_amount),
        "discountAmount": _money(order.discount_amount),
        "totalAmount": _money(order.total_amount),
        "notes": order.notes,
        "refundRequired": order.refund_required,
        "foodItems": [
            _serialize_line(item, foods.get(item.food_item_id)) for item in order.items
        ],
        "paymentAttempts": [serialize_payment(p) for p in order.payment_attempts],
        "createdAt": _iso(order.created_at),
        "updatedAt": _iso(order.updated_at),
    }
    if include_pii:
        data["customerName"] = order.customer_name
        data["customerPhone"] = order.customer_phone
    if table is not None:
        data["table"] = serialize_table(table)
    return data


def new_order_event(
    order: Order, restaurant: Restaurant, table: Table, lines: Sequence[ResolvedLine]
) -> Dict[str, Any]:
    """Denormalized summary pushed to the kitchen when an order is placed."""

    return {
        "order": {
            "id": order.id,
            "orderNo": order.order_no,
            "restaurantId": restaurant.id,
            "status": order.status,
            "totalAmount": _money(order.total_amount),
            "isPaid": order.is_paid,
            "table": serialize_table(table),
            "orderedFoodItems": [
                {
                    "foodItemId": line.food_item_id,
                    "variantName": line.variant_name,
                    "quantity": line.quantity,
                    "price": _money(line.price),
                    "finalPrice": _money(line.final_price),
                    "foodName": line.food_name,
                    "foodType": line.food_type,
                    "isVariantOrder": line.is_variant_order,
                }
                for line in lines
            ],
            "createdAt": _iso(order.created_at),
        },
        "message": "A new order has been placed",
    }


def _order_items(lines: Sequence[ResolvedLine]) -> List[OrderItem]:
    return [
        OrderItem(
            position=pos,
            food_item_id=line.food_item_id,
            variant_name=line.variant_name,
            quantity=line.quantity,
            price=line.price,
            final_price=line.final_price,
        )
        for pos, line in enumerate(lines)
    ]


# ---------------------------------------------------------------------------
# listing filters
# ---------------------------------------------------------------------------


@dataclass
class OrderFilters:
    status: List[OrderStatus] = field(default_factory=list)
    is_paid: Optional[bool] = None
    date: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    search: str = ""
    sort_by: str = "createdAt"
    sort_type: str = "desc"
    page: int = 1
    limit: int = 10


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def date_window(
    filters: OrderFilters, today: Optional[date] = None
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Return the ``[start, end)`` creation window selected by ``filters``."""

    today = today or datetime.now(timezone.utc).date()
    if filters.date == "today":
        day = today
    elif filters.date == "yesterday":
        day = today - timedelta(days=1)
    elif filters.date:
        day = _parse_day(filters.date)
    else:
        start = _day_start(_parse_day(filters.date_from)) if filters.date_from else None
        end = (
            _day_start(_parse_day(filters.date_to) + timedelta(days=1))
            if filters.date_to
            else None
        )
        return start, end
    return _day_start(day), _day_start(day + timedelta(days=1))


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _search_clause(term: str):
    pattern = _like_pattern(term)
    line_match = exists(
        select(OrderItem.id)
        .join(FoodItem, FoodItem.id == OrderItem.food_item_id)
        .where(
            OrderItem.order_id == Order.id,
            or_(
                FoodItem.food_name.ilike(pattern, escape="\\"),
                OrderItem.variant_name.ilike(pattern, escape="\\"),
            ),
        )
    )
    clauses = [
        Table.table_name.ilike(pattern, escape="\\"),
        Table.qr_slug.ilike(pattern, escape="\\"),
        Order.customer_name.ilike(pattern, escape="\\"),
        Order.customer_phone.ilike(pattern, escape="\\"),
        Order.notes.ilike(pattern, escape="\\"),
        line_match,
    ]
    if term.isdigit():
        clauses.append(Order.order_no == int(term))
    return or_(*clauses)


_status_rank = case(
    {status.value: rank for status, rank in STATUS_RANK.items()},
    value=Order.status,
    else_=len(STATUS_RANK) + 1,
)


# ---------------------------------------------------------------------------
# service
# ---------------------------------------------------------------------------


class OrderService:
    """Entry point for every order operation exposed over HTTP."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: PaymentGateway,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings

    # -- lookups -----------------------------------------------------------

    @staticmethod
    async def _restaurant(session: AsyncSession, slug: str) -> Restaurant:
        restaurant = await session.scalar(select(Restaurant).where(Restaurant.slug == slug))
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        return restaurant

    @staticmethod
    async def _authorize(session: AsyncSession, restaurant: Restaurant, actor: Actor) -> None:
        if actor.is_owner:
            if restaurant.owner_id == actor.user_id:
                return
        else:
            member = await session.scalar(
                select(RestaurantStaff.id).where(
                    RestaurantStaff.restaurant_id == restaurant.id,
                    RestaurantStaff.user_id == actor.user_id,
                )
            )
            if member is not None:
                return
        raise AuthorizationError(
            "You are not authorized to manage orders for this restaurant"
        )

    @staticmethod
    async def _order(session: AsyncSession, restaurant: Restaurant, order_id: str) -> Order:
        order = await session.scalar(
            select(Order).where(Order.id == order_id, Order.restaurant_id == restaurant.id)
        )
        if order is None:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def _foods_for(session: AsyncSession, orders: Iterable[Order]) -> Dict[str, FoodItem]:
        ids = {item.food_item_id for order in orders for item in order.items}
        if not ids:
            return {}
        result = await session.execute(select(FoodItem).where(FoodItem.id.in_(ids)))
        return {food.id: food for food in result.scalars()}

    @staticmethod
    async def _tables_for(session: AsyncSession, orders: Iterable[Order]) -> Dict[str, Table]:
        ids = {order.table_id for order in orders}
        if not ids:
            return {}
        result = await session.execute(select(Table).where(Table.id.in_(ids)))
        return {table.id: table for table in result.scalars()}

    # -- create ------------------------------------------------------------

    async def create_order(
        self,
        restaurant_slug: str,
        table_qr_slug: str,
        lines: Sequence[LineRequest],
        payment_method: PaymentMethod,
        *,
        notes: Optional[str] = None,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Place an order for a table and return ``{order, paymentData?}``.

        Runs as one transaction: if any step fails (validation, occupied
        table, plan limit, gateway) nothing is persisted, including the
        order number increment.
        """

        if not lines:
            raise ValidationError("At least one food item is required")
        payment_method = PaymentMethod(payment_method)

        async def work(session: AsyncSession):
            restaurant = await self._restaurant(session, restaurant_slug)
            if not restaurant.is_currently_open:
                raise ValidationError(
                    "Restaurant is currently closed", code="RESTAURANT_CLOSED"
                )
            table = await table_occupancy.find_table(session, restaurant.id, table_qr_slug)
            table_occupancy.ensure_free(table)
            resolved = await resolve_lines(session, restaurant.id, lines)
            await can_restaurant_receive_orders(session, restaurant, self.settings)
            pricing = price_lines(resolved, TaxConfig.of(restaurant))
            order_no = await next_order_no(session, restaurant.id)

            order = Order(
                id=str(uuid.uuid4()),
                order_no=order_no,
                restaurant_id=restaurant.id,
                table_id=table.id,
                status=OrderStatus.PENDING.value,
                is_paid=False,
                payment_method=payment_method.value,
                subtotal=pricing.subtotal,
                tax_amount=pricing.tax_amount,
                discount_amount=pricing.discount_amount,
                total_amount=pricing.total_amount,
                notes=notes,
                customer_name=customer_name,
                customer_phone=customer_phone,
                refund_required=False,
                created_at=datetime.now(timezone.utc),
                items=_order_items(resolved),
                payment_attempts=[],
            )
            session.add(order)
            await session.flush()
            await table_occupancy.acquire(session, table, order.id)

            remote = None
            if payment_method is PaymentMethod.ONLINE:
                _, remote = await payments.create_for_order(
                    session, order, restaurant, pricing, self.gateway, self.settings.currency
                )
            return order, restaurant, table, resolved, remote

        order, restaurant, table, resolved, remote = await run_in_transaction(
            self.session_factory, work, label="create order"
        )
        orders_created_total.inc()
        logger.info(
            "order %s (#%s) placed at table %s",
            order.id,
            order.order_no,
            table.id,
            extra={"restaurant": restaurant.id},
        )
        await emit_safely(
            self.notifier,
            [staff_room(restaurant.id), owner_room(restaurant.id)],
            "newOrder",
            new_order_event(order, restaurant, table, resolved),
        )

        data: Dict[str, Any] = {"order": serialize_order(order, table=table)}
        # names come from the menu snapshot the order was validated against
        for line_data, line in zip(data["order"]["foodItems"], resolved):
            line_data.update(
                foodName=line.food_name,
                foodType=line.food_type,
                isVariantOrder=line.is_variant_order,
            )
        if remote is not None:
            data["paymentData"] = remote.raw or {
                "id": remote.gateway_order_id,
                "amount": remote.amount,
                "currency": remote.currency,
                "receipt": remote.receipt,
            }
        return data

    # -- update ------------------------------------------------------------

    async def update_order(
        self,
        restaurant_slug: str,
        order_id: str,
        actor: Actor,
        lines: Sequence[LineRequest],
        *,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Replace the line items of an order still in the kitchen queue.

        Prices are recomputed and any pending payment is rewritten with the
        new amounts.
        """

        if not lines:
            raise ValidationError("At least one food item is required")

        async def work(session: AsyncSession):
            restaurant = await self._restaurant(session, restaurant_slug)
            await self._authorize(session, restaurant, actor)
            order = await self._order(session, restaurant, order_id)
            if OrderStatus(order.status) not in EDITABLE_STATUSES:
                raise InvariantViolation(
                    "Order items can only be changed while the order is pending or preparing",
                    code="IMMUTABLE",
                )
            resolved = await resolve_lines(session, restaurant.id, lines)
            pricing = price_lines(resolved, TaxConfig.of(restaurant))

            order.items = _order_items(resolved)
            if notes:
                order.notes = notes
            order.subtotal = pricing.subtotal
            order.tax_amount = pricing.tax_amount
            order.discount_amount = pricing.discount_amount
            order.total_amount = pricing.total_amount
            await session.flush()
            await payments.sync_pending_on_items_change(session, order, pricing)
            foods = await self._foods_for(session, [order])
            return serialize_order(order, foods=foods)

        data = await run_in_transaction(self.session_factory, work, label="update order")
        logger.info("order %s items updated by %s", order_id, actor.user_id)
        return data

    async def update_status(
        self,
        restaurant_slug: str,
        order_id: str,
        actor: Actor,
        new_status: OrderStatus,
    ) -> Dict[str, Any]:
        """Move an order through the lifecycle on behalf of ``actor``."""

        new_status = OrderStatus(new_status)

        async def work(session: AsyncSession):
            restaurant = await self._restaurant(session, restaurant_slug)
            await self._authorize(session, restaurant, actor)
            order = await self._order(session, restaurant, order_id)
            result = await order_state.transition(session, order, new_status, actor)
            await session.flush()
            return serialize_order(result.order), result.previous, result.table_released

        data, previous, released = await run_in_transaction(
            self.session_factory, work, label="update status"
        )
        logger.info(
            "order %s %s -> %s by %s%s",
            order_id,
            previous.value,
            new_status.value,
            actor.user_id,
            ", table released" if released else "",
        )
        order_transitions_total.labels(status=new_status.value).inc()
        await self._emit_status(data)
        return data

    async def toggle_paid_status(
        self,
        restaurant_slug: str,
        order_id: str,
        actor: Actor,
        mark_completed: bool = False,
    ) -> Dict[str, Any]:
        """Flip the paid flag of a cash order, optionally completing it."""

        async def work(session: AsyncSession):
            restaurant = await self._restaurant(session, restaurant_slug)
            await self._authorize(session, restaurant, actor)
            order = await self._order(session, restaurant, order_id)
            result = await payments.toggle_paid_status(session, order, actor, mark_completed)
            await session.flush()
            return serialize_order(result.order), result.completed, result.table_released

        data, completed, released = await run_in_transaction(
            self.session_factory, work, label="toggle paid status"
        )
        logger.info(
            "order %s marked %s by %s%s",
            order_id,
            "paid" if data["isPaid"] else "unpaid",
            actor.user_id,
            ", completed and table released" if released else "",
        )
        if completed:
            order_transitions_total.labels(status=OrderStatus.COMPLETED.value).inc()
        await self._emit_status(data)
        return data

    async def _emit_status(self, data: Dict[str, Any]) -> None:
        await emit_safely(
            self.notifier,
            [order_room(data["id"])],
            "orderStatusUpdated",
            {
                "orderId": data["id"],
                "status": data["status"],
                "isPaid": data["isPaid"],
                "refundRequired": data["refundRequired"],
            },
        )

    # -- reads -------------------------------------------------------------

    async def get_order(self, restaurant_slug: str, order_id: str) -> Dict[str, Any]:
        """Return one order with its table, line details, payments and tax setup."""

        async with self.session_factory() as session:
            restaurant = await self._restaurant(session, restaurant_slug)
            order = await self._order(session, restaurant, order_id)
            foods = await self._foods_for(session, [order])
            table = await session.get(Table, order.table_id)
            data = serialize_order(order, table=table, foods=foods)
            data["restaurant"] = {
                "id": restaurant.id,
                "restaurantName": restaurant.restaurant_name,
                "slug": restaurant.slug,
                "taxRate": _money(restaurant.tax_rate),
                "taxLabel": restaurant.tax_label,
                "isTaxIncludedInPrice": restaurant.is_tax_included_in_price,
            }
            return data

    async def list_orders(
        self, restaurant_slug: str, actor: Actor, filters: OrderFilters
    ) -> Dict[str, Any]:
        """Filtered, paginated orders of a restaurant for its staff.

        Rows omit customer contact details.
        """

        if filters.page < 1 or filters.limit < 1:
            raise ValidationError("Page and limit must be positive integers")
        sort_column = SORTABLE_FIELDS.get(filters.sort_by)
        if sort_column is None:
            raise ValidationError(f"Cannot sort orders by {filters.sort_by}")
        direction = asc if filters.sort_type == "asc" else desc

        async with self.session_factory() as session:
            restaurant = await self._restaurant(session, restaurant_slug)
            await self._authorize(session, restaurant, actor)

            conditions = [Order.restaurant_id == restaurant.id]
            if filters.status:
                conditions.append(Order.status.in_([OrderStatus(s).value for s in filters.status]))
            if filters.is_paid is not None:
                conditions.append(Order.is_paid.is_(filters.is_paid))
            start, end = date_window(filters)
            if start is not None:
                conditions.append(Order.created_at >= start)
            if end is not None:
                conditions.append(Order.created_at < end)
            term = filters.search.strip()
            if term:
                conditions.append(_search_clause(term))

            total = await session.scalar(
                select(func.count(Order.id))
                .join(Table, Table.id == Order.table_id)
                .where(*conditions)
            )
            result = await session.execute(
                select(Order)
                .join(Table, Table.id == Order.table_id)
                .where(*conditions)
                .order_by(direction(sort_column), _status_rank, Order.order_no)
                .offset((filters.page - 1) * filters.limit)
                .limit(filters.limit)
            )
            orders = list(result.scalars().unique())
            foods = await self._foods_for(session, orders)
            tables = await self._tables_for(session, orders)

        total = total or 0
        return {
            "orders": [
                serialize_order(o, table=tables.get(o.table_id), foods=foods, include_pii=False)
                for o in orders
            ],
            "page": filters.page,
            "limit": filters.limit,
            "totalPages": math.ceil(total / filters.limit),
            "totalOrders": total,
        }

    async def get_orders_by_ids(
        self, restaurant_slug: str, order_ids: Sequence[str], limit: int = 10
    ) -> List[Dict[str, Any]]:
        """Orders a customer placed earlier, newest first."""

        if limit < 1 or limit > MAX_ORDERS_BY_IDS:
            raise ValidationError(f"Limit must be between 1 and {MAX_ORDERS_BY_IDS}")
        ids = [i.strip() for i in order_ids if i and i.strip()][:limit]
        if not ids:
            raise ValidationError("Invalid order IDs provided")

        async with self.session_factory() as session:
            restaurant = await self._restaurant(session, restaurant_slug)
            result = await session.execute(
                select(Order)
                .where(Order.restaurant_id == restaurant.id, Order.id.in_(ids))
                .order_by(Order.created_at.desc())
            )
            orders = list(result.scalars().unique())
            foods = await self._foods_for(session, orders)
            tables = await self._tables_for(session, orders)
        return [serialize_order(o, table=tables.get(o.table_id), foods=foods) for o in orders]

    async def get_table_order(
        self, restaurant_slug: str, table_qr_slug: str, actor: Actor
    ) -> Dict[str, Any]:
        """The active order occupying a table."""

        async with self.session_factory() as session:
            restaurant = await self._restaurant(session, restaurant_slug)
            await self._authorize(session, restaurant, actor)
            table = await table_occupancy.find_table(session, restaurant.id, table_qr_slug)
            if not table.current_order_id:
                raise NotFoundError("No current order found for this table")
            order = await self._order(session, restaurant, table.current_order_id)
            foods = await self._foods_for(session, [order])
            return serialize_order(order, table=table, foods=foods)


__all__ = [
    "MAX_ORDERS_BY_IDS",
    "OrderFilters",
    "OrderService",
    "date_window",
    "new_order_event",
    "serialize_order",
]
