"""Resolve requested order lines against the current menu.

Validation is a pure function of the requested line and the menu row it
references; :func:`resolve_lines` only adds the batched lookup. Each
resolved line carries the price snapshot that the order keeps even if the
menu changes later.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import NotFoundError, ValidationError
from ..models_tenant import FoodItem, FoodVariant


@dataclass(frozen=True)
class LineRequest:
    """A line as submitted by the client."""

    food_item_id: str
    quantity: int
    variant_name: str | None = None


@dataclass(frozen=True)
class ResolvedLine:
    """A validated line with immutable price snapshots."""

    food_item_id: str
    variant_name: str | None
    quantity: int
    price: Decimal
    final_price: Decimal
    food_name: str
    food_type: str

    @property
    def is_variant_order(self) -> bool:
        return self.variant_name is not None


def _check_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError(
            f"Quantity must be a positive integer, got {quantity!r}",
            code="INVALID_QUANTITY",
        )
    return quantity


def _find_variant(item: FoodItem, name: str) -> FoodVariant | None:
    return next((v for v in item.variants if v.variant_name == name), None)


def validate_line(
    restaurant_id: str, line: LineRequest, item: FoodItem | None
) -> ResolvedLine:
    """Validate ``line`` against ``item`` and return its price snapshot.

    ``item`` is the menu row looked up by ``line.food_item_id`` (``None`` when
    no such row exists).
    """

    quantity = _check_quantity(line.quantity)
    if item is None or item.restaurant_id != restaurant_id:
        raise NotFoundError(f"Food item with id {line.food_item_id} not found")
    if not item.is_available:
        raise ValidationError(
            f"{item.food_name} is not available", code="UNAVAILABLE"
        )

    variant_name = line.variant_name or None
    if variant_name is None:
        if item.has_variants:
            raise ValidationError(
                f"Choose a variant for {item.food_name}", code="INVALID_VARIANT"
            )
        price = Decimal(item.price)
        discounted = item.discounted_price
    else:
        if not item.has_variants:
            raise ValidationError(
                f"{item.food_name} does not have variants", code="INVALID_VARIANT"
            )
        variant = _find_variant(item, variant_name)
        if variant is None:
            raise ValidationError(
                f"Variant {variant_name} for food item {item.food_name} is not valid",
                code="INVALID_VARIANT",
            )
        if not variant.is_available:
            raise ValidationError(
                f"Variant {variant_name} for food item {item.food_name} is not available",
                code="UNAVAILABLE",
            )
        price = Decimal(variant.price)
        discounted = variant.discounted_price

    final_price = Decimal(discounted) if discounted is not None else price
    return ResolvedLine(
        food_item_id=item.id,
        variant_name=variant_name,
        quantity=quantity,
        price=price,
        final_price=final_price,
        food_name=item.food_name,
        food_type=item.food_type,
    )


def validate_lines(
    restaurant_id: str,
    lines: Sequence[LineRequest],
    items: Mapping[str, FoodItem],
) -> list[ResolvedLine]:
    """Validate every line in order; the first failure aborts the whole list."""

    if not lines:
        raise ValidationError("At least one food item is required")
    return [validate_line(restaurant_id, line, items.get(line.food_item_id)) for line in lines]


async def load_items(
    session: AsyncSession, restaurant_id: str, item_ids: Iterable[str]
) -> dict[str, FoodItem]:
    """Fetch the referenced food items of ``restaurant_id`` keyed by id."""

    ids = set(item_ids)
    if not ids:
        return {}
    result = await session.execute(
        select(FoodItem).where(
            FoodItem.id.in_(ids), FoodItem.restaurant_id == restaurant_id
        )
    )
    return {item.id: item for item in result.scalars()}


async def resolve_lines(
    session: AsyncSession, restaurant_id: str, lines: Sequence[LineRequest]
) -> list[ResolvedLine]:
    """Load the menu rows for ``lines`` and validate them in one pass."""

    items = await load_items(session, restaurant_id, (line.food_item_id for line in lines))
    return validate_lines(restaurant_id, lines, items)
