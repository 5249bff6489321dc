"""Order lifecycle state machine.

``pending -> preparing -> ready -> served -> completed``, with ``cancelled``
reachable from every non-terminal state. :func:`check_transition` holds the
rules and touches nothing; :func:`transition` applies an allowed change and
its side effects inside the caller's transaction.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..domain import Actor, OrderStatus, PaymentStatus, can_transition, is_terminal
from ..domain.errors import AuthorizationError, ConflictError, InvariantViolation
from ..models_tenant import Order
from . import table_occupancy


@dataclass
class TransitionResult:
    order: Order
    previous: OrderStatus
    table_released: bool = False


def ensure_claim(order: Order, actor: Actor) -> None:
    """Only the staff member who claimed ``order`` (or an owner) may act on it."""

    if (
        not actor.is_owner
        and order.kitchen_staff_id
        and order.kitchen_staff_id != actor.user_id
    ):
        raise AuthorizationError(
            "Only the kitchen staff who updated the order can change its status",
            code="FORBIDDEN",
        )


def ensure_mutable(order: Order) -> None:
    if is_terminal(order.status):
        raise InvariantViolation(
            "Cannot update status of completed or cancelled orders", code="IMMUTABLE"
        )


def claim(order: Order, actor: Actor) -> None:
    if not order.kitchen_staff_id:
        order.kitchen_staff_id = actor.user_id


def check_transition(order: Order, new_status: OrderStatus, actor: Actor) -> None:
    """Raise if ``order`` may not move to ``new_status`` on behalf of ``actor``."""

    current = OrderStatus(order.status)
    if new_status == current:
        raise ConflictError(
            f"Order status is already set to {new_status.value}", code="SAME_STATUS"
        )
    ensure_mutable(order)
    ensure_claim(order, actor)
    if new_status is OrderStatus.COMPLETED and current is not OrderStatus.SERVED:
        raise InvariantViolation(
            "Order must be served before it can be marked as completed",
            code="OUT_OF_ORDER",
        )
    if new_status is OrderStatus.COMPLETED and not order.is_paid:
        raise InvariantViolation(
            "Order must be paid before it can be marked as completed", code="UNPAID"
        )
    if not can_transition(current, new_status):
        raise InvariantViolation(
            f"Order cannot move from {current.value} to {new_status.value}",
            code="OUT_OF_ORDER",
        )


async def finish(session: AsyncSession, order: Order, new_status: OrderStatus) -> bool:
    """Apply terminal-state side effects; returns whether the table was freed.

    Cancelling keeps ``is_paid`` as is. A paid order that is cancelled is
    flagged ``refund_required`` for manual reconciliation, and any payment
    attempt still pending is cancelled so it can no longer be captured.
    """

    if new_status is OrderStatus.COMPLETED:
        order.is_paid = True
    elif new_status is OrderStatus.CANCELLED:
        for payment in order.payment_attempts:
            if payment.status == PaymentStatus.PENDING.value:
                payment.status = PaymentStatus.CANCELLED.value
        if order.is_paid:
            order.refund_required = True
    return await table_occupancy.release(session, order.table_id, order.id)


async def transition(
    session: AsyncSession, order: Order, new_status: OrderStatus, actor: Actor
) -> TransitionResult:
    """Move ``order`` to ``new_status`` and apply the side effects.

    The first actor to move an order claims it. Completing forces
    ``is_paid``; completing or cancelling frees the table.
    """

    check_transition(order, new_status, actor)
    previous = OrderStatus(order.status)
    order.status = new_status.value
    claim(order, actor)
    released = False
    if is_terminal(new_status):
        released = await finish(session, order, new_status)
    return TransitionResult(order=order, previous=previous, table_released=released)


__all__ = [
    "TransitionResult",
    "check_transition",
    "ensure_claim",
    "ensure_mutable",
    "claim",
    "finish",
    "transition",
]
