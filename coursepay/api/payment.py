"""CoursePay - Payment API routes.

Checkout flow for the course marketplace:
1. POST /payments/create - open a gateway order for a course
2. Razorpay Checkout collects the payment on the client
3. POST /payments/verify - relay the signed checkout result for settlement

All routes require a signed-in user; the user is passed to the services
explicitly as the payer or refund requester.
"""

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from coursepay.api.deps import (
    CurrentUser,
    get_order_service,
    get_refund_service,
    get_settlement_service,
)
from coursepay.core.exceptions import ReconciliationRequiredError
from coursepay.models.refund import Refund
from coursepay.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    GatewayOrder,
    PaymentErrorResponse,
    RefundOut,
    RefundRequest,
    RefundResponse,
    RefundStatusResponse,
    TransactionHistoryItem,
    TransactionHistoryResponse,
    TransactionResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from coursepay.services.order_service import OrderService
from coursepay.services.refund_service import RefundService
from coursepay.services.settlement_service import SettlementService
from coursepay.tasks.refunds import sync_refund_status
from coursepay.utils.amount import from_minor_units

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": PaymentErrorResponse},
    403: {"model": PaymentErrorResponse},
    404: {"model": PaymentErrorResponse},
    409: {"model": PaymentErrorResponse},
    502: {"model": PaymentErrorResponse},
}


def _refund_out(refund: Refund, payment_id: str) -> RefundOut:
    return RefundOut(
        id=refund.gateway_refund_id,
        payment_id=payment_id,
        amount=refund.amount,
        currency=refund.currency,
        status=refund.status.value,
        speed=refund.speed.value,
        created_at=refund.created_at,
    )


def _gateway_refund_out(data: dict[str, Any], payment_id: str) -> RefundOut:
    """Build a RefundOut from a gateway refund descriptor (minor units)."""
    created_at = None
    if data.get("created_at"):
        created_at = datetime.fromtimestamp(int(data["created_at"]), UTC)
    return RefundOut(
        id=data["id"],
        payment_id=data.get("payment_id") or payment_id,
        amount=from_minor_units(int(data.get("amount") or 0)),
        currency=data.get("currency") or "INR",
        status=data.get("status") or "pending",
        speed=data.get("speed_requested") or data.get("speed"),
        created_at=created_at,
    )


# ============ Orders ============


@router.post(
    "/create",
    response_model=CreateOrderResponse,
    responses=ERROR_RESPONSES,
    summary="Create payment order",
    description="Open a gateway order for a course at its current price.",
)
async def create_order(
    data: CreateOrderRequest,
    user: CurrentUser,
    service: Annotated[OrderService, Depends(get_order_service)],
):
    """Create a gateway order for the signed-in payer.

    The charged amount is the course price; a client supplied amount or
    currency is only cross-checked.
    """
    order, key_id = await service.initiate_order(
        payer_id=user.id,
        course_id=data.course_id,
        expected_amount=data.amount,
        currency=data.currency,
    )
    return CreateOrderResponse(order=GatewayOrder.model_validate(order), key=key_id)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    responses=ERROR_RESPONSES,
    summary="Verify payment",
    description="Verify a signed checkout result and record the course purchase.",
)
async def verify_payment(
    data: VerifyPaymentRequest,
    user: CurrentUser,
    service: Annotated[SettlementService, Depends(get_settlement_service)],
):
    """Settle a checkout result.

    Signature message format:
        razorpay_order_id + "|" + razorpay_payment_id

    Example:
        sign = HMAC-SHA256(message, key_secret)
    """
    transaction = await service.settle(
        payer_id=user.id,
        course_id=data.course_id,
        gateway_order_id=data.razorpay_order_id,
        gateway_payment_id=data.razorpay_payment_id,
        signature=data.razorpay_signature,
    )
    return VerifyPaymentResponse(data=TransactionResponse.model_validate(transaction))


# ============ History ============


@router.get(
    "/history",
    response_model=TransactionHistoryResponse,
    summary="Transaction history",
)
async def get_history(
    user: CurrentUser,
    service: Annotated[SettlementService, Depends(get_settlement_service)],
):
    """List the signed-in payer's transactions, newest first."""
    items = await service.list_history(user.id)
    return TransactionHistoryResponse(data=[TransactionHistoryItem(**item) for item in items])


# ============ Refunds ============


@router.post(
    "/refund",
    response_model=RefundResponse,
    responses={**ERROR_RESPONSES, 202: {"model": RefundResponse}},
    summary="Refund payment",
    description="Refund a completed payment in full or in part.",
)
async def refund_payment(
    data: RefundRequest,
    user: CurrentUser,
    service: Annotated[RefundService, Depends(get_refund_service)],
):
    """Refund a payment.

    Answers 202 when the gateway refunded but the local records could not be
    updated. ``status_sync`` is ``"pending"`` once a sync job is queued, or
    ``"manual"`` when the job could not be queued either.
    """
    try:
        refund = await service.refund(
            payment_id=data.payment_id,
            requested_by=user,
            reason=data.reason,
            amount=data.amount,
            speed=data.speed,
        )
    except ReconciliationRequiredError as e:
        status_sync = "pending"
        message = "Refund initiated, status sync pending"
        try:
            sync_refund_status.delay(e.payment_id, e.refund, e.reason, str(user.id))
        except Exception:
            logger.exception(
                f"Could not queue refund sync for refund {e.refund.get('id')} "
                f"of payment {e.payment_id}; manual reconciliation required"
            )
            status_sync = "manual"
            message = "Refund initiated, manual reconciliation required"

        response = RefundResponse(
            message=message,
            refund=_gateway_refund_out(e.refund, e.payment_id),
            status_sync=status_sync,
        )
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=response.model_dump(mode="json"),
        )

    return RefundResponse(refund=_refund_out(refund, data.payment_id))


@router.get(
    "/{payment_id}/refunds/{refund_id}",
    response_model=RefundStatusResponse,
    responses=ERROR_RESPONSES,
    summary="Refund status",
)
async def get_refund_status(
    payment_id: str,
    refund_id: str,
    user: CurrentUser,
    service: Annotated[RefundService, Depends(get_refund_service)],
):
    """Get a refund's current status from the gateway."""
    gateway_refund = await service.get_refund_status(payment_id, refund_id, requested_by=user)
    return RefundStatusResponse(refund=_gateway_refund_out(gateway_refund, payment_id))
