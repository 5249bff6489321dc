"""Razorpay Orders API client."""

from __future__ import annotations

import logging
from typing import Dict

import httpx

from .base import GatewayError, GatewayOrder

logger = logging.getLogger("tableorder.gateway")


class RazorpayGateway:
    """Create Razorpay orders with HTTP basic auth (key id / key secret)."""

    name = "Razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = (key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def create_remote_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt_id: str,
        metadata: Dict[str, str],
    ) -> GatewayOrder:
        body = {
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt_id,
            "notes": metadata,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self._base_url}/orders", json=body, auth=self._auth
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("razorpay order creation failed: %s", exc)
            raise GatewayError("Failed to create payment order") from exc
        except ValueError as exc:
            raise GatewayError("Gateway returned an unreadable response") from exc

        order_id = data.get("id") if isinstance(data, dict) else None
        if not order_id:
            raise GatewayError("Failed to create payment order")
        return GatewayOrder(
            gateway_order_id=order_id,
            amount=int(data.get("amount", amount_minor_units)),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt_id),
            raw=data,
        )
