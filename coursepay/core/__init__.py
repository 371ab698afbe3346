"""Core module - configuration, security, and exceptions."""

from coursepay.core.config import Settings, get_settings
from coursepay.core.exceptions import (
    AlreadyProcessedError,
    AlreadyPurchasedError,
    AuthorizationError,
    ConflictError,
    CoursePayError,
    CourseNotFoundError,
    GatewayError,
    NotFoundError,
    PaymentNotCapturedError,
    ReconciliationRequiredError,
    SignatureInvalidError,
    TransactionNotFoundError,
    ValidationError,
)
from coursepay.core.security import (
    generate_signature,
    verify_payment_signature,
    verify_webhook_signature,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Security
    "generate_signature",
    "verify_payment_signature",
    "verify_webhook_signature",
    # Exceptions
    "CoursePayError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "CourseNotFoundError",
    "TransactionNotFoundError",
    "ConflictError",
    "AlreadyPurchasedError",
    "AlreadyProcessedError",
    "SignatureInvalidError",
    "PaymentNotCapturedError",
    "GatewayError",
    "ReconciliationRequiredError",
]
