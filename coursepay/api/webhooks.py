"""Webhook endpoint for Razorpay event notifications.

Razorpay signs the raw request body with the webhook secret:
    X-Razorpay-Signature = HMAC-SHA256(body, webhook_secret)

Handled events:
- payment.captured - settle the payment (idempotent with /payments/verify)
- refund.processed / refund.failed - update the recorded refund status

Other events are acknowledged and ignored. Errors that a redelivery could
fix (gateway unreachable) propagate so Razorpay retries.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request

from coursepay.api.deps import get_refund_service, get_settlement_service
from coursepay.core.config import get_settings
from coursepay.core.exceptions import (
    AlreadyProcessedError,
    AlreadyPurchasedError,
    SignatureInvalidError,
    ValidationError,
)
from coursepay.core.security import verify_webhook_signature
from coursepay.models.refund import RefundStatus
from coursepay.schemas.payment import PaymentErrorResponse, WebhookAck
from coursepay.services.refund_service import RefundService
from coursepay.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

REFUND_EVENTS = {
    "refund.processed": RefundStatus.PROCESSED,
    "refund.failed": RefundStatus.FAILED,
}


def _entity(payload: dict[str, Any], name: str) -> dict[str, Any]:
    """Extract payload.<name>.entity from an event body."""
    container = payload.get("payload") or {}
    entity = (container.get(name) or {}).get("entity")
    return entity if isinstance(entity, dict) else {}


@router.post(
    "/razorpay",
    response_model=WebhookAck,
    responses={400: {"model": PaymentErrorResponse}},
)
async def razorpay_webhook(
    request: Request,
    settlement: Annotated[SettlementService, Depends(get_settlement_service)],
    refunds: Annotated[RefundService, Depends(get_refund_service)],
    x_razorpay_signature: Annotated[str | None, Header()] = None,
):
    """Receive Razorpay webhook notifications."""
    body = await request.body()

    secret = get_settings().razorpay_webhook_secret
    if not verify_webhook_signature(body, x_razorpay_signature, secret):
        logger.warning("Razorpay webhook rejected: invalid signature")
        raise SignatureInvalidError("Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ValidationError("Invalid webhook body") from e
    if not isinstance(payload, dict):
        raise ValidationError("Invalid webhook body")

    event = payload.get("event")
    logger.info(f"Razorpay webhook received: {event}")

    if event == "payment.captured":
        payment = _entity(payload, "payment")
        order_id = payment.get("order_id")
        payment_id = payment.get("id")
        if not order_id or not payment_id:
            return WebhookAck(status="ignored", reason="payment without order")

        try:
            await settlement.settle_captured_payment(order_id, payment_id)
        except AlreadyProcessedError:
            return WebhookAck(reason="already processed")
        except (AlreadyPurchasedError, ValidationError) as e:
            logger.warning(f"Webhook payment {payment_id} not settled: {e.message}")
            return WebhookAck(status="ignored", reason=e.message)
        return WebhookAck()

    if event in REFUND_EVENTS:
        refund_id = _entity(payload, "refund").get("id")
        if not refund_id:
            return WebhookAck(status="ignored", reason="refund without id")

        refund = await refunds.mark_refund_status(refund_id, REFUND_EVENTS[event])
        if not refund:
            return WebhookAck(status="ignored", reason="unknown refund")
        return WebhookAck()

    return WebhookAck(status="ignored", reason="unhandled event")
