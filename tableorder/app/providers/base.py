"""Base interface for payment gateway providers."""

from dataclasses import dataclass, field
from typing import Any, Dict, Protocol


class GatewayError(Exception):
    """Raised when the gateway could not create a remote payment order."""


@dataclass(frozen=True)
class GatewayOrder:
    """Remote payment order as acknowledged by the gateway."""

    gateway_order_id: str
    amount: int
    currency: str
    receipt: str
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    name: str

    async def create_remote_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt_id: str,
        metadata: Dict[str, str],
    ) -> GatewayOrder:
        """Create a payment order at the gateway.

        Parameters:
            amount_minor_units: Amount in the currency's minor unit (paise).
            currency: ISO currency code.
            receipt_id: Merchant-side receipt reference.
            metadata: Notes echoed back by the gateway in webhooks.
        """
        ...
