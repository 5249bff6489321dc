"""Payment gateway providers."""

from config import GatewayProvider, Settings

from .base import GatewayError, GatewayOrder, PaymentGateway
from .razorpay import RazorpayGateway
from .sandbox import SandboxGateway


def build_gateway(settings: Settings) -> PaymentGateway:
    """Return the gateway selected by ``settings.payment_gateway``."""

    if settings.payment_gateway is GatewayProvider.RAZORPAY:
        return RazorpayGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            base_url=settings.razorpay_api_url,
            timeout=settings.gateway_timeout_secs,
        )
    return SandboxGateway()


__all__ = [
    "GatewayError",
    "GatewayOrder",
    "PaymentGateway",
    "RazorpayGateway",
    "SandboxGateway",
    "build_gateway",
]
