"""CoursePay - Custom exceptions.

Every error raised by the payment services carries a machine-readable
``code`` and the HTTP status the API layer answers with. Messages are safe
to show to clients; upstream details stay in ``details`` and the logs.
"""

from typing import Any

from coursepay.schemas.payment import PaymentErrorCode


class CoursePayError(Exception):
    """Base exception for all CoursePay errors."""

    status_code: int = 500
    code: PaymentErrorCode = PaymentErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: PaymentErrorCode | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(CoursePayError):
    """Input validation failed."""

    status_code = 400
    code = PaymentErrorCode.VALIDATION_ERROR


class AuthorizationError(CoursePayError):
    """User lacks permission for this action."""

    status_code = 403
    code = PaymentErrorCode.FORBIDDEN


class NotFoundError(CoursePayError):
    """Requested record does not exist."""

    status_code = 404
    code = PaymentErrorCode.NOT_FOUND


class CourseNotFoundError(NotFoundError):
    """Course does not exist."""

    code = PaymentErrorCode.COURSE_NOT_FOUND

    def __init__(self, course_id: Any) -> None:
        super().__init__("Course not found", {"course_id": str(course_id)})


class TransactionNotFoundError(NotFoundError):
    """No completed transaction for the payment."""

    code = PaymentErrorCode.TRANSACTION_NOT_FOUND

    def __init__(self, payment_id: str) -> None:
        super().__init__("Transaction not found", {"payment_id": payment_id})


class ConflictError(CoursePayError):
    """Request conflicts with recorded state."""

    status_code = 409
    code = PaymentErrorCode.CONFLICT


class AlreadyPurchasedError(ConflictError):
    """Payer already holds a completed purchase of the course."""

    status_code = 400
    code = PaymentErrorCode.ALREADY_PURCHASED

    def __init__(self, course_id: Any) -> None:
        super().__init__("Course already purchased", {"course_id": str(course_id)})


class AlreadyProcessedError(ConflictError):
    """Gateway payment was already recorded."""

    code = PaymentErrorCode.ALREADY_PROCESSED

    def __init__(self, payment_id: str) -> None:
        super().__init__("Payment already processed", {"payment_id": payment_id})


class SignatureInvalidError(CoursePayError):
    """Callback or webhook signature does not match."""

    status_code = 400
    code = PaymentErrorCode.INVALID_SIGNATURE

    def __init__(self, message: str = "Invalid payment signature") -> None:
        super().__init__(message)


class PaymentNotCapturedError(CoursePayError):
    """Gateway reports the payment as not captured."""

    status_code = 400
    code = PaymentErrorCode.PAYMENT_NOT_CAPTURED

    def __init__(self, payment_id: str, gateway_status: str | None) -> None:
        super().__init__(
            "Payment has not been captured",
            {"payment_id": payment_id, "gateway_status": gateway_status},
        )


class GatewayError(CoursePayError):
    """Payment gateway unreachable or rejected the request."""

    status_code = 502
    code = PaymentErrorCode.GATEWAY_ERROR


class ReconciliationRequiredError(CoursePayError):
    """Gateway refund succeeded but the local state could not be updated.

    Carries the gateway refund so a status sync job can replay the local
    write later.
    """

    status_code = 202
    code = PaymentErrorCode.RECONCILIATION_REQUIRED

    def __init__(self, payment_id: str, refund: dict[str, Any], reason: str) -> None:
        self.payment_id = payment_id
        self.refund = refund
        self.reason = reason
        super().__init__(
            "Refund issued, local status sync pending",
            {"payment_id": payment_id, "refund_id": refund.get("id")},
        )
