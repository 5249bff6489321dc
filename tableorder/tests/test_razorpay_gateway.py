import json

import httpx
import pytest

from config import GatewayProvider, Settings
from tableorder.app.providers import (
    GatewayError,
    RazorpayGateway,
    SandboxGateway,
    build_gateway,
)


def _gateway(handler) -> RazorpayGateway:
    return RazorpayGateway(
        "rzp_test_key",
        "secret",
        base_url="https://razorpay.test/v1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.anyio
async def test_creates_remote_order():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "order_Rz1",
                "amount": 21000,
                "currency": "INR",
                "receipt": "receipt_order_o1",
                "status": "created",
            },
        )

    remote = await _gateway(handler).create_remote_order(
        21000, "INR", "receipt_order_o1", {"orderId": "o1", "paymentType": "order"}
    )
    assert remote.gateway_order_id == "order_Rz1"
    assert remote.amount == 21000
    assert remote.raw["status"] == "created"
    assert seen["url"] == "https://razorpay.test/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert seen["body"]["notes"]["paymentType"] == "order"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": {"description": "down"}}),
        httpx.Response(200, json={"amount": 100}),
        httpx.Response(200, content=b"<html>"),
    ],
)
async def test_failures_raise_gateway_error(response):
    gateway = _gateway(lambda request: response)
    with pytest.raises(GatewayError):
        await gateway.create_remote_order(100, "INR", "r", {})


def test_build_gateway_follows_settings():
    assert isinstance(build_gateway(Settings(payment_gateway=GatewayProvider.SANDBOX)), SandboxGateway)
    gateway = build_gateway(
        Settings(
            payment_gateway=GatewayProvider.RAZORPAY,
            razorpay_key_id="rzp_test_key",
            razorpay_key_secret="secret",
        )
    )
    assert isinstance(gateway, RazorpayGateway)
