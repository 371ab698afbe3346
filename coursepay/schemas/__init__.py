"""Schemas module - Pydantic DTOs for request/response."""

from coursepay.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    GatewayOrder,
    PaymentErrorCode,
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
    WebhookAck,
)

__all__: list[str] = [
    # Orders
    "CreateOrderRequest",
    "CreateOrderResponse",
    "GatewayOrder",
    # Verification
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "TransactionResponse",
    # History
    "TransactionHistoryItem",
    "TransactionHistoryResponse",
    # Refunds
    "RefundRequest",
    "RefundResponse",
    "RefundOut",
    "RefundStatusResponse",
    # Webhooks
    "WebhookAck",
    # Errors
    "PaymentErrorResponse",
    "PaymentErrorCode",
]
