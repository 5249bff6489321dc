"""Payment attempts and the order's paid state.

Online orders get a pending :class:`Payment` plus a remote gateway order at
creation time. Cash orders are marked paid by staff. Gateway webhooks settle
online attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain import Actor, OrderStatus, PaymentMethod, PaymentStatus
from ..domain.errors import ExternalDependencyError, ValidationError
from ..models_tenant import Order, Payment, Restaurant
from ..pricing import PriceBreakdown
from ..providers import GatewayError, GatewayOrder, PaymentGateway
from ..routes_metrics import payment_gateway_failures_total
from . import order_state

logger = logging.getLogger("tableorder.payments")


def to_minor_units(amount: Decimal) -> int:
    """Convert a rupee amount into paise."""

    return int((Decimal(amount) * 100).quantize(Decimal("1")))


async def create_for_order(
    session: AsyncSession,
    order: Order,
    restaurant: Restaurant,
    pricing: PriceBreakdown,
    gateway: PaymentGateway,
    currency: str,
) -> tuple[Payment, GatewayOrder]:
    """Open a pending payment for an online ``order`` and its gateway order.

    A gateway failure raises :class:`ExternalDependencyError`, which aborts
    the surrounding order transaction.
    """

    if order.payment_method != PaymentMethod.ONLINE.value:
        raise ValidationError("Only online orders are paid through the gateway")

    payment = Payment(
        order_id=order.id,
        method=PaymentMethod.ONLINE.value,
        status=PaymentStatus.PENDING.value,
        subtotal=pricing.subtotal,
        tax_amount=pricing.tax_amount,
        discount_amount=pricing.discount_amount,
        tip_amount=Decimal("0"),
        total_amount=pricing.total_amount,
    )
    session.add(payment)
    await session.flush()

    try:
        remote = await gateway.create_remote_order(
            to_minor_units(pricing.total_amount),
            currency,
            f"receipt_order_{order.id}",
            {
                "orderId": order.id,
                "restaurantSlug": restaurant.slug,
                "paymentType": "order",
            },
        )
    except GatewayError as exc:
        payment_gateway_failures_total.inc()
        logger.warning("gateway %s failed for order %s: %s", gateway.name, order.id, exc)
        raise ExternalDependencyError("Failed to create payment order") from exc

    payment.payment_gateway = gateway.name
    payment.gateway_order_id = remote.gateway_order_id
    order.payment_attempts.append(payment)
    return payment, remote


async def sync_pending_on_items_change(
    session: AsyncSession, order: Order, pricing: PriceBreakdown
) -> int:
    """Rewrite the amounts of ``order``'s pending payments in place.

    No new attempt is created. Returns the number of payments updated.
    """

    updated = 0
    for payment in order.payment_attempts:
        if payment.status != PaymentStatus.PENDING.value:
            continue
        payment.subtotal = pricing.subtotal
        payment.tax_amount = pricing.tax_amount
        payment.discount_amount = pricing.discount_amount
        payment.tip_amount = Decimal("0")
        payment.total_amount = pricing.total_amount
        updated += 1
    if updated:
        await session.flush()
    return updated


@dataclass
class PaidToggleResult:
    order: Order
    completed: bool = False
    table_released: bool = False


async def toggle_paid_status(
    session: AsyncSession, order: Order, actor: Actor, mark_completed: bool = False
) -> PaidToggleResult:
    """Flip ``is_paid`` on a cash order.

    With ``mark_completed`` an order that becomes paid is also completed and
    its table freed.
    """

    if order.payment_method != PaymentMethod.CASH.value:
        raise ValidationError(
            "Only cash orders can be marked as paid or unpaid", code="NOT_CASH_ORDER"
        )
    # completed orders are immutable, so they can never be flipped to unpaid
    order_state.ensure_mutable(order)

    order.is_paid = not order.is_paid
    result = PaidToggleResult(order=order)
    if mark_completed and order.is_paid:
        order_state.ensure_claim(order, actor)
        order.status = OrderStatus.COMPLETED.value
        result.completed = True
        result.table_released = await order_state.finish(
            session, order, OrderStatus.COMPLETED
        )
    order_state.claim(order, actor)
    return result


async def apply_gateway_event(session: AsyncSession, event: Dict[str, Any]) -> str:
    """Settle a payment attempt from a Razorpay webhook ``event``.

    Returns a short message for the acknowledgement. Events that do not
    concern an order payment are acknowledged without any change.
    """

    name = event.get("event")
    entity = ((event.get("payload") or {}).get("payment") or {}).get("entity")
    if not name or not isinstance(entity, dict):
        raise ValidationError("Invalid webhook payload")
    if name not in ("payment.captured", "payment.failed"):
        return "Event not relevant for processing"

    notes = entity.get("notes") or {}
    if notes.get("paymentType") != "order":
        return "Event not relevant for processing"
    if name == "payment.captured" and entity.get("status") != "captured":
        raise ValidationError("Payment status is not captured")

    stmt = select(Payment).where(
        Payment.gateway_order_id == entity.get("order_id"),
        Payment.status == PaymentStatus.PENDING.value,
    )
    if notes.get("orderId"):
        stmt = stmt.where(Payment.order_id == notes["orderId"])
    payment = await session.scalar(stmt.with_for_update())
    if payment is None:
        logger.info("no pending payment for gateway order %s", entity.get("order_id"))
        return "Payment already processed"

    if name == "payment.failed":
        payment.status = PaymentStatus.FAILED.value
        return "Payment marked as failed"

    payment.status = PaymentStatus.PAID.value
    payment.gateway_payment_id = entity.get("id")
    acquirer = entity.get("acquirer_data") or {}
    payment.transaction_id = acquirer.get("upi_transaction_id") or acquirer.get("rrn")

    result = await session.execute(
        update(Order)
        .where(Order.id == payment.order_id, Order.is_paid.is_(False))
        .values(is_paid=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return "Order already paid"
    logger.info("order %s paid via gateway order %s", payment.order_id, payment.gateway_order_id)
    return "Webhook processed successfully"


__all__ = [
    "PaidToggleResult",
    "apply_gateway_event",
    "create_for_order",
    "sync_pending_on_items_change",
    "to_minor_units",
    "toggle_paid_status",
]
