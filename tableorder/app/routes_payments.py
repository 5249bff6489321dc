from __future__ import annotations

"""Payment gateway webhook routes."""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request

from config import get_settings

from .db.transaction import run_in_transaction
from .deps.orders import get_sessionmaker
from .domain.errors import ValidationError
from .services import payments
from .utils.responses import ok
from .utils.webhook_signing import verify

router = APIRouter(prefix="/payment")

logger = logging.getLogger("tableorder.payments")


@router.post("/razorpay/webhook")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    session_factory=Depends(get_sessionmaker),
) -> dict:
    """Reconcile order payments from Razorpay ``payment.*`` events."""

    body = await request.body()
    if not verify(get_settings().razorpay_webhook_secret, body, x_razorpay_signature):
        raise ValidationError("Invalid webhook signature", code="BAD_SIGNATURE")
    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid webhook payload") from None
    if not isinstance(event, dict):
        raise ValidationError("Invalid webhook payload")

    async def work(session):
        return await payments.apply_gateway_event(session, event)

    message = await run_in_transaction(session_factory, work, label="razorpay webhook")
    logger.info("razorpay %s: %s", event.get("event"), message)
    return ok(True, message)
