"""Offline gateway used in development and demos."""

from __future__ import annotations

import uuid
from typing import Dict

from .base import GatewayOrder


class SandboxGateway:
    """Fabricate gateway order ids without any network call."""

    name = "Sandbox"

    async def create_remote_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt_id: str,
        metadata: Dict[str, str],
    ) -> GatewayOrder:
        order_id = f"order_sbx_{uuid.uuid4().hex[:14]}"
        raw = {
            "id": order_id,
            "entity": "order",
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt_id,
            "status": "created",
            "notes": dict(metadata),
        }
        return GatewayOrder(
            gateway_order_id=order_id,
            amount=amount_minor_units,
            currency=currency,
            receipt=receipt_id,
            raw=raw,
        )
