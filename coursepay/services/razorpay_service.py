"""Razorpay Service - Interact with the Razorpay REST API.

This service handles:
1. Orders - open an order before checkout, fetch it to read the charged amount
2. Payments - fetch a payment to corroborate its captured status
3. Refunds - issue full or partial refunds and query their status

Amounts cross this boundary in minor units (paise); callers pass and
receive ``Decimal`` major units through the ``*_amount`` helpers.
"""

import logging
from decimal import Decimal
from typing import Any

import httpx

from coursepay.core.config import Settings
from coursepay.core.exceptions import GatewayError
from coursepay.utils.amount import to_minor_units

logger = logging.getLogger(__name__)


class RazorpayService:
    """Client for the Razorpay payment gateway.

    Holds one ``httpx.AsyncClient`` shared by all in-flight requests.
    Construct once at startup and ``close()`` on shutdown.
    """

    PAYMENT_CAPTURED = "captured"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayService":
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            base_url=settings.razorpay_api_url,
            timeout=settings.gateway_timeout_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ============ Orders ============

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a gateway order.

        Args:
            amount: Order amount in major units
            currency: ISO currency code
            receipt: Merchant receipt reference
            notes: Metadata echoed back on the order and in webhooks

        Returns:
            Gateway order descriptor (amount in minor units)
        """
        return await self._request(
            "POST",
            "/orders",
            json={
                "amount": to_minor_units(amount),
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def fetch_order(self, order_id: str) -> dict[str, Any]:
        """Fetch a gateway order by ID."""
        return await self._request("GET", f"/orders/{order_id}")

    # ============ Payments ============

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        """Fetch a gateway payment by ID."""
        return await self._request("GET", f"/payments/{payment_id}")

    # ============ Refunds ============

    async def refund_payment(
        self,
        payment_id: str,
        amount: Decimal | None = None,
        speed: str = "normal",
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Refund a captured payment.

        Args:
            payment_id: Gateway payment ID
            amount: Partial amount in major units; None refunds in full
            speed: 'normal' or 'optimum'
            notes: Metadata stored on the refund

        Returns:
            Gateway refund descriptor (amount in minor units)
        """
        body: dict[str, Any] = {"speed": speed, "notes": notes or {}}
        if amount is not None:
            body["amount"] = to_minor_units(amount)
        return await self._request("POST", f"/payments/{payment_id}/refund", json=body)

    async def fetch_refund(self, payment_id: str, refund_id: str) -> dict[str, Any]:
        """Fetch a refund of a payment."""
        return await self._request("GET", f"/payments/{payment_id}/refunds/{refund_id}")

    # ============ Private Helpers ============

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and translate failures to GatewayError.

        Upstream error text is logged but never placed in the exception
        message, which may be shown to clients.
        """
        client = await self._get_client()

        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"Razorpay timeout: {method} {path}")
            raise GatewayError("Payment gateway timed out", {"path": path}) from e
        except httpx.RequestError as e:
            logger.error(f"Razorpay request error: {method} {path}: {e}")
            raise GatewayError("Payment gateway unreachable", {"path": path}) from e

        if response.is_error:
            gateway_code, description = self._parse_error(response)
            logger.error(
                f"Razorpay {method} {path} failed: "
                f"HTTP {response.status_code} {gateway_code} - {description}"
            )
            raise GatewayError(
                "Payment gateway rejected the request",
                {"status_code": response.status_code, "gateway_code": gateway_code},
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Razorpay {method} {path} returned a non-JSON body")
            raise GatewayError("Invalid response from payment gateway", {"path": path}) from e

    @staticmethod
    def _parse_error(response: httpx.Response) -> tuple[str | None, str | None]:
        """Extract Razorpay's error code and description from an error response."""
        try:
            data = response.json()
        except ValueError:
            return None, response.text[:200]
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            return None, None
        return error.get("code"), error.get("description")
