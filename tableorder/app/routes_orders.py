from __future__ import annotations

"""Order placement and kitchen-side order management routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .deps.actor import get_actor
from .deps.orders import get_order_service
from .domain import Actor, OrderStatus, PaymentMethod
from .menu import LineRequest
from .services.orders import MAX_ORDERS_BY_IDS, OrderFilters, OrderService
from .utils.responses import ok

router = APIRouter(prefix="/order")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FoodLine(_CamelModel):
    """Single requested line; ``id`` is the food item id."""

    id: str = Field(
        min_length=1, validation_alias=AliasChoices("foodItemId", "_id", "id")
    )
    quantity: int
    variant_name: Optional[str] = None

    def to_request(self) -> LineRequest:
        return LineRequest(
            food_item_id=self.id,
            quantity=self.quantity,
            variant_name=self.variant_name or None,
        )


class PlaceOrderPayload(_CamelModel):
    food_items: List[FoodLine] = Field(min_length=1)
    payment_method: PaymentMethod
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class UpdateOrderPayload(_CamelModel):
    food_items: List[FoodLine] = Field(min_length=1)
    notes: Optional[str] = None


class StatusPayload(BaseModel):
    status: OrderStatus


class PaidStatusPayload(_CamelModel):
    mark_completed: bool = False


@router.post("/{restaurant_slug}/{table_qr_slug}", status_code=201)
async def create_order(
    restaurant_slug: str,
    table_qr_slug: str,
    payload: PlaceOrderPayload,
    service: OrderService = Depends(get_order_service),
) -> JSONResponse:
    """Place an order from a table's QR code."""

    data = await service.create_order(
        restaurant_slug,
        table_qr_slug,
        [line.to_request() for line in payload.food_items],
        payload.payment_method,
        notes=payload.notes,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
    )
    return JSONResponse(ok(data, "Order created successfully"), status_code=201)


@router.get("/{restaurant_slug}/by-ids")
async def get_orders_by_ids(
    restaurant_slug: str,
    order_ids: str = Query(alias="orderIds", min_length=1),
    limit: int = Query(10, ge=1, le=MAX_ORDERS_BY_IDS),
    service: OrderService = Depends(get_order_service),
) -> dict:
    """Orders a guest placed earlier, given as comma separated ids."""

    ids = order_ids.split(",")
    data = await service.get_orders_by_ids(restaurant_slug, ids, limit)
    return ok(data, "Orders retrieved successfully")


@router.get("/{restaurant_slug}/table/{table_qr_slug}")
async def get_table_order(
    restaurant_slug: str,
    table_qr_slug: str,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
) -> dict:
    data = await service.get_table_order(restaurant_slug, table_qr_slug, actor)
    return ok(data, "Order retrieved successfully")


@router.get("/{restaurant_slug}/{order_id}")
async def get_order(
    restaurant_slug: str,
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> dict:
    data = await service.get_order(restaurant_slug, order_id)
    return ok(data, "Order retrieved successfully")


@router.get("/{restaurant_slug}")
async def list_orders(
    restaurant_slug: str,
    status: List[OrderStatus] = Query(default=[]),
    is_paid: Optional[bool] = Query(None, alias="isPaid"),
    date: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    search: str = "",
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_type: str = Query("desc", alias="sortType", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
) -> dict:
    """List a restaurant's orders with filters and pagination."""

    filters = OrderFilters(
        status=status,
        is_paid=is_paid,
        date=date,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_type=sort_type,
        page=page,
        limit=limit,
    )
    data = await service.list_orders(restaurant_slug, actor, filters)
    return ok(data, "Orders retrieved successfully")


@router.patch("/{restaurant_slug}/{order_id}")
async def update_order(
    restaurant_slug: str,
    order_id: str,
    payload: UpdateOrderPayload,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
) -> dict:
    """Replace the items of an order that has not left the kitchen queue."""

    data = await service.update_order(
        restaurant_slug,
        order_id,
        actor,
        [line.to_request() for line in payload.food_items],
        notes=payload.notes,
    )
    return ok(data, "Order updated successfully")


@router.patch("/{restaurant_slug}/{order_id}/status")
async def update_order_status(
    restaurant_slug: str,
    order_id: str,
    payload: StatusPayload,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
) -> dict:
    data = await service.update_status(restaurant_slug, order_id, actor, payload.status)
    return ok(data, "Order status updated successfully")


@router.patch("/{restaurant_slug}/{order_id}/paid-status")
async def update_paid_status(
    restaurant_slug: str,
    order_id: str,
    payload: Optional[PaidStatusPayload] = None,
    actor: Actor = Depends(get_actor),
    service: OrderService = Depends(get_order_service),
) -> dict:
    """Toggle the paid flag of a cash order."""

    mark_completed = payload.mark_completed if payload else False
    data = await service.toggle_paid_status(restaurant_slug, order_id, actor, mark_completed)
    return ok(data, "Order payment status updated successfully")
