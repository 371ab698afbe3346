"""CoursePay Service Layer.

Business logic for course payments: opening orders, settling verified
payments and refunding them. Services receive the request's database
session and the shared gateway client explicitly.
"""

from coursepay.services.order_service import OrderService
from coursepay.services.razorpay_service import RazorpayService
from coursepay.services.refund_service import RefundService
from coursepay.services.settlement_service import SettlementService

__all__ = [
    "OrderService",
    "RazorpayService",
    "RefundService",
    "SettlementService",
]
