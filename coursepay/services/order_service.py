"""CoursePay - Order service.

Opens gateway orders for course purchases. No local record is written
here; settlement correlates the payment through the order notes and the
unique gateway payment id.
"""

import logging
import secrets
import time
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from coursepay.core.exceptions import AlreadyPurchasedError, CourseNotFoundError, ValidationError
from coursepay.models.course import Course
from coursepay.models.transaction import Transaction, TransactionStatus
from coursepay.schemas.payment import PaymentErrorCode
from coursepay.services.razorpay_service import RazorpayService
from coursepay.utils.amount import quantize_amount

logger = logging.getLogger(__name__)

ORDER_PURPOSE = "Course Purchase"


def generate_receipt() -> str:
    """Generate a gateway receipt reference.

    Format: receipt_ + timestamp_ms + random_hex(6)
    """
    timestamp = int(time.time() * 1000)
    return f"receipt_{timestamp}{secrets.token_hex(3)}"


async def get_completed_purchase(
    db: AsyncSession, payer_id: uuid.UUID, course_id: uuid.UUID
) -> Transaction | None:
    """Get the payer's completed transaction for a course, if any."""
    result = await db.execute(
        select(Transaction).where(
            Transaction.user_id == payer_id,
            Transaction.course_id == course_id,
            Transaction.status == TransactionStatus.COMPLETED,
        )
    )
    return result.scalars().first()


class OrderService:
    """Service for opening course purchase orders."""

    def __init__(self, db: AsyncSession, gateway: RazorpayService, currency: str = "INR") -> None:
        self.db = db
        self.gateway = gateway
        self.currency = currency.upper()

    async def initiate_order(
        self,
        payer_id: uuid.UUID,
        course_id: uuid.UUID,
        expected_amount: Decimal | None = None,
        currency: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        """Open a gateway order for a course at its current price.

        Args:
            payer_id: Authenticated payer
            course_id: Course to purchase
            expected_amount: Price the client displayed; cross-checked only
            currency: Currency the client expects; cross-checked only

        Returns:
            Tuple of (gateway order descriptor, gateway public key id)

        Raises:
            AlreadyPurchasedError: Payer already completed a purchase of the course
            CourseNotFoundError: Course does not exist
            ValidationError: Client amount or currency disagrees with the course
            GatewayError: Gateway rejected or did not answer
        """
        # Check prior purchase before touching the gateway
        if await get_completed_purchase(self.db, payer_id, course_id):
            raise AlreadyPurchasedError(course_id)

        course = await self.db.get(Course, course_id)
        if not course:
            raise CourseNotFoundError(course_id)

        amount = quantize_amount(course.price)
        if expected_amount is not None and quantize_amount(expected_amount) != amount:
            raise ValidationError(
                "Amount does not match course price",
                {"expected": str(amount), "received": str(expected_amount)},
                code=PaymentErrorCode.PRICE_MISMATCH,
            )
        if currency and currency.upper() != self.currency:
            raise ValidationError(
                f"Currency must be {self.currency}",
                {"currency": currency},
                code=PaymentErrorCode.UNSUPPORTED_CURRENCY,
            )

        order = await self.gateway.create_order(
            amount=amount,
            currency=self.currency,
            receipt=generate_receipt(),
            notes={
                "courseId": str(course.id),
                "userId": str(payer_id),
                "courseName": course.name,
                "purpose": ORDER_PURPOSE,
            },
        )

        logger.info(
            f"Order opened order_id={order.get('id')} payer={payer_id} "
            f"course={course_id} amount={amount} {self.currency}"
        )
        return order, self.gateway.key_id
