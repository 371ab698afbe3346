"""Models module - SQLModel database entities."""

from coursepay.models.course import Course
from coursepay.models.enrollment import Enrollment, EnrollmentStatus
from coursepay.models.refund import Refund, RefundSpeed, RefundStatus
from coursepay.models.transaction import Transaction, TransactionStatus
from coursepay.models.user import User, UserRole

__all__ = [
    # User
    "User",
    "UserRole",
    # Course
    "Course",
    # Transaction
    "Transaction",
    "TransactionStatus",
    # Enrollment
    "Enrollment",
    "EnrollmentStatus",
    # Refund
    "Refund",
    "RefundSpeed",
    "RefundStatus",
]
