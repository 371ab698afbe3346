"""Tests for the Razorpay REST client."""

import base64
import json
from decimal import Decimal

import httpx
import pytest

from coursepay.core.exceptions import GatewayError
from coursepay.schemas.payment import PaymentErrorCode
from coursepay.services.razorpay_service import RazorpayService
from tests.conftest import GATEWAY_URL, KEY_ID, KEY_SECRET


def make_service(handler) -> RazorpayService:
    return RazorpayService(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        base_url=GATEWAY_URL,
        transport=httpx.MockTransport(handler),
    )


async def test_create_order_sends_minor_units_with_basic_auth():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_1", "amount": 49900, "currency": "INR"})

    service = make_service(handler)
    order = await service.create_order(
        Decimal("499.00"), "INR", "receipt_1", notes={"courseId": "c1"}
    )
    await service.close()

    expected_auth = base64.b64encode(f"{KEY_ID}:{KEY_SECRET}".encode()).decode()
    assert order["id"] == "order_1"
    assert captured["path"] == "/v1/orders"
    assert captured["auth"] == f"Basic {expected_auth}"
    assert captured["body"] == {
        "amount": 49900,
        "currency": "INR",
        "receipt": "receipt_1",
        "notes": {"courseId": "c1"},
    }


async def test_full_refund_omits_amount():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "rfnd_1", "amount": 49900})

    service = make_service(handler)
    await service.refund_payment("pay_1", speed="optimum", notes={"reason": "duplicate"})
    await service.refund_payment("pay_1", amount=Decimal("100"))
    await service.close()

    assert bodies[0] == {"speed": "optimum", "notes": {"reason": "duplicate"}}
    assert bodies[1]["amount"] == 10000


async def test_error_response_becomes_gateway_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": {"code": "BAD_REQUEST_ERROR", "description": "secret upstream text"}},
        )

    service = make_service(handler)
    with pytest.raises(GatewayError) as exc_info:
        await service.fetch_payment("pay_missing")
    await service.close()

    assert exc_info.value.code == PaymentErrorCode.GATEWAY_ERROR
    assert exc_info.value.details == {"status_code": 400, "gateway_code": "BAD_REQUEST_ERROR"}
    assert "secret upstream text" not in exc_info.value.message


async def test_non_json_error_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    service = make_service(handler)
    with pytest.raises(GatewayError) as exc_info:
        await service.fetch_order("order_1")
    await service.close()

    assert exc_info.value.details["status_code"] == 502


async def test_timeout_becomes_gateway_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    service = make_service(handler)
    with pytest.raises(GatewayError, match="timed out"):
        await service.fetch_refund("pay_1", "rfnd_1")
    await service.close()


async def test_connection_error_becomes_gateway_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    service = make_service(handler)
    with pytest.raises(GatewayError, match="unreachable"):
        await service.fetch_payment("pay_1")
    await service.close()


async def test_client_recreated_after_close():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "pay_1", "status": "captured"})

    service = make_service(handler)
    await service.fetch_payment("pay_1")
    await service.close()

    payment = await service.fetch_payment("pay_1")
    await service.close()

    assert payment["status"] == "captured"
