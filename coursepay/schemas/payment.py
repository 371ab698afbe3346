"""CoursePay - Payment schemas.

Schemas for the payment API (order creation, checkout verification,
history and refunds). Request field names follow the checkout client:
camelCase for our own fields, ``razorpay_*`` for the values Razorpay
Checkout hands back.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from coursepay.models.refund import RefundSpeed
from coursepay.models.transaction import TransactionStatus

DEFAULT_REFUND_REASON = "Customer requested refund"


class PaymentErrorCode(str, Enum):
    """Machine-readable error codes returned by the API."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    UNSUPPORTED_CURRENCY = "UNSUPPORTED_CURRENCY"
    ORDER_MISMATCH = "ORDER_MISMATCH"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    CONFLICT = "CONFLICT"
    ALREADY_PURCHASED = "ALREADY_PURCHASED"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    PAYMENT_NOT_CAPTURED = "PAYMENT_NOT_CAPTURED"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ============ Order Schemas ============


class CreateOrderRequest(BaseModel):
    """Request to open a gateway order for a course.

    ``amount`` and ``currency`` are optional and only cross-checked against
    the course price; the charged amount always comes from the course.
    """

    model_config = ConfigDict(populate_by_name=True)

    course_id: uuid.UUID = Field(..., alias="courseId", description="Course to purchase")
    amount: Decimal | None = Field(
        default=None, gt=0, decimal_places=2, description="Expected price (major units)"
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)


class GatewayOrder(BaseModel):
    """Gateway order descriptor handed to the checkout client."""

    id: str = Field(..., description="Gateway order ID")
    amount: int = Field(..., description="Amount in minor units (paise)")
    currency: str
    receipt: str | None = None
    status: str | None = None


class CreateOrderResponse(BaseModel):
    """Response for order creation."""

    success: bool = True
    order: GatewayOrder
    key: str = Field(..., description="Gateway public key id for checkout")


# ============ Verification Schemas ============


class VerifyPaymentRequest(BaseModel):
    """Checkout callback relayed by the client.

    sign = HMAC-SHA256(razorpay_order_id + "|" + razorpay_payment_id, key_secret)
    """

    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: str = Field(..., min_length=1, max_length=64)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=64)
    razorpay_signature: str = Field(..., min_length=1, max_length=128)
    course_id: uuid.UUID = Field(..., alias="courseId")


class TransactionResponse(BaseModel):
    """Recorded transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    course_id: uuid.UUID
    amount: Decimal
    currency: str
    status: TransactionStatus
    gateway_payment_id: str | None
    gateway_order_id: str
    created_at: datetime
    refund_reason: str | None = None
    refunded_at: datetime | None = None
    refunded_amount: Decimal | None = None


class VerifyPaymentResponse(BaseModel):
    """Response for a verified and settled payment."""

    success: bool = True
    message: str = "Payment verified and enrollment recorded successfully"
    data: TransactionResponse


# ============ History Schemas ============


class TransactionHistoryItem(BaseModel):
    """One row of the payer's transaction history."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    amount: Decimal
    status: TransactionStatus
    date: datetime
    course_name: str = Field(..., alias="courseName")


class TransactionHistoryResponse(BaseModel):
    success: bool = True
    data: list[TransactionHistoryItem]


# ============ Refund Schemas ============


class RefundRequest(BaseModel):
    """Request to refund a recorded payment.

    Omitting ``amount`` refunds the full charged amount.
    """

    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(..., alias="paymentId", min_length=1, max_length=64)
    amount: Decimal | None = Field(
        default=None, gt=0, decimal_places=2, description="Partial refund amount (major units)"
    )
    reason: str = Field(default=DEFAULT_REFUND_REASON, min_length=10, max_length=500)
    speed: RefundSpeed = Field(default=RefundSpeed.NORMAL)


class RefundOut(BaseModel):
    """Refund as reported to the client."""

    id: str = Field(..., description="Gateway refund ID")
    payment_id: str
    amount: Decimal
    currency: str
    status: str
    speed: str | None = None
    created_at: datetime | None = None


class RefundResponse(BaseModel):
    """Response for a refund request.

    ``status_sync`` is ``"pending"`` when the gateway refund went through but
    the local records are still being synced, and ``"manual"`` when the sync
    job could not be queued.
    """

    success: bool = True
    message: str = "Refund initiated successfully"
    refund: RefundOut
    status_sync: str | None = None


class RefundStatusResponse(BaseModel):
    success: bool = True
    refund: RefundOut


# ============ Webhook Schemas ============


class WebhookAck(BaseModel):
    """Acknowledgement returned to the gateway."""

    status: str = "ok"
    reason: str | None = None


# ============ Error Response ============


class PaymentErrorResponse(BaseModel):
    """Error response for payment API."""

    success: bool = False
    error_code: str
    error_message: str
