"""CoursePay - Settlement service.

Records verified, captured payments as completed transactions and grants
course access. Two entry points share one recording path:

1. settle() - checkout callback relayed by the client, signature checked here
2. settle_captured_payment() - gateway webhook, signature checked by the route
"""

import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from coursepay.core.exceptions import (
    AlreadyProcessedError,
    AlreadyPurchasedError,
    PaymentNotCapturedError,
    SignatureInvalidError,
    ValidationError,
)
from coursepay.core.security import verify_payment_signature
from coursepay.models.course import Course
from coursepay.models.enrollment import Enrollment, EnrollmentStatus
from coursepay.models.transaction import Transaction, TransactionStatus
from coursepay.schemas.payment import PaymentErrorCode
from coursepay.services.order_service import get_completed_purchase
from coursepay.services.razorpay_service import RazorpayService
from coursepay.utils.amount import from_minor_units
from coursepay.utils.helpers import utc_now

logger = logging.getLogger(__name__)


def _order_notes(order: dict[str, Any]) -> dict[str, Any]:
    # Razorpay sends an empty list when an order has no notes
    notes = order.get("notes")
    return notes if isinstance(notes, dict) else {}


def _parse_uuid(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class SettlementService:
    """Service for recording settled course payments."""

    def __init__(self, db: AsyncSession, gateway: RazorpayService) -> None:
        self.db = db
        self.gateway = gateway

    # ============ Settlement ============

    async def settle(
        self,
        payer_id: uuid.UUID,
        course_id: uuid.UUID,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> Transaction:
        """Settle a checkout callback.

        The signature is checked before any I/O; a tampered callback never
        reaches the gateway or the database.

        Raises:
            SignatureInvalidError: Callback signature does not match
            AlreadyProcessedError: Payment was already recorded
            AlreadyPurchasedError: Payer holds another completed purchase
            PaymentNotCapturedError: Gateway reports the payment uncaptured
            ValidationError: Payment or order does not match the callback
            GatewayError: Gateway rejected or did not answer
        """
        if not verify_payment_signature(
            gateway_order_id, gateway_payment_id, signature, self.gateway.key_secret
        ):
            logger.warning(
                f"Invalid callback signature order_id={gateway_order_id} "
                f"payment_id={gateway_payment_id} payer={payer_id}"
            )
            raise SignatureInvalidError()

        return await self._record_settlement(
            payer_id, course_id, gateway_order_id, gateway_payment_id
        )

    async def settle_captured_payment(
        self, gateway_order_id: str, gateway_payment_id: str
    ) -> Transaction:
        """Settle a payment announced by a verified gateway webhook.

        Payer and course are taken from the gateway order notes written when
        the order was opened.
        """
        # Redelivered webhooks stop here without a gateway round trip
        if await self.get_by_payment_id(gateway_payment_id):
            logger.info(f"Payment already processed payment_id={gateway_payment_id}")
            raise AlreadyProcessedError(gateway_payment_id)

        order = await self.gateway.fetch_order(gateway_order_id)
        notes = _order_notes(order)
        payer_id = _parse_uuid(notes.get("userId"))
        course_id = _parse_uuid(notes.get("courseId"))
        if payer_id is None or course_id is None:
            raise ValidationError(
                "Order is not a course purchase",
                {"order_id": gateway_order_id},
                code=PaymentErrorCode.ORDER_MISMATCH,
            )

        return await self._record_settlement(
            payer_id, course_id, gateway_order_id, gateway_payment_id, order=order
        )

    async def _record_settlement(
        self,
        payer_id: uuid.UUID,
        course_id: uuid.UUID,
        gateway_order_id: str,
        gateway_payment_id: str,
        order: dict[str, Any] | None = None,
    ) -> Transaction:
        # Replay of an already recorded payment
        if await self.get_by_payment_id(gateway_payment_id):
            logger.info(f"Payment already processed payment_id={gateway_payment_id}")
            raise AlreadyProcessedError(gateway_payment_id)

        existing = await get_completed_purchase(self.db, payer_id, course_id)
        if existing:
            logger.error(
                f"Captured payment {gateway_payment_id} for already purchased course "
                f"{course_id} (payer={payer_id}, transaction={existing.id}); refund required"
            )
            raise AlreadyPurchasedError(course_id)

        # Corroborate with the gateway
        payment = await self.gateway.fetch_payment(gateway_payment_id)
        payment_status = payment.get("status")
        if payment_status != RazorpayService.PAYMENT_CAPTURED:
            logger.warning(f"Payment {gateway_payment_id} not captured: status={payment_status}")
            raise PaymentNotCapturedError(gateway_payment_id, payment_status)
        if payment.get("order_id") != gateway_order_id:
            logger.warning(
                f"Payment {gateway_payment_id} belongs to order {payment.get('order_id')}, "
                f"not {gateway_order_id}"
            )
            raise ValidationError(
                "Payment does not belong to this order",
                {"order_id": gateway_order_id, "payment_id": gateway_payment_id},
                code=PaymentErrorCode.ORDER_MISMATCH,
            )

        if order is None:
            order = await self.gateway.fetch_order(gateway_order_id)
        notes = _order_notes(order)
        noted_payer = _parse_uuid(notes.get("userId"))
        noted_course = _parse_uuid(notes.get("courseId"))
        if noted_payer != payer_id or noted_course != course_id:
            logger.warning(
                f"Order {gateway_order_id} was not opened for payer={payer_id} course={course_id}"
            )
            raise ValidationError(
                "Order does not match this purchase",
                {"order_id": gateway_order_id},
                code=PaymentErrorCode.ORDER_MISMATCH,
            )

        transaction = Transaction(
            user_id=payer_id,
            course_id=course_id,
            amount=from_minor_units(int(order["amount"])),
            currency=str(order.get("currency") or "INR").upper(),
            status=TransactionStatus.COMPLETED,
            gateway_payment_id=gateway_payment_id,
            gateway_order_id=gateway_order_id,
        )
        self.db.add(transaction)

        try:
            await self.db.flush()
            await self._grant_enrollment(transaction)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            # Concurrent duplicate delivery won the insert
            if await self.get_by_payment_id(gateway_payment_id):
                logger.info(f"Payment {gateway_payment_id} recorded concurrently")
                raise AlreadyProcessedError(gateway_payment_id) from e
            # Another payment for the same course won the enrollment insert
            if await get_completed_purchase(self.db, payer_id, course_id):
                logger.error(
                    f"Captured payment {gateway_payment_id} lost a concurrent settlement for "
                    f"course {course_id} (payer={payer_id}); refund required"
                )
                raise AlreadyPurchasedError(course_id) from e
            raise

        await self.db.refresh(transaction)
        logger.info(
            f"Payment settled payment_id={gateway_payment_id} order_id={gateway_order_id} "
            f"payer={payer_id} course={course_id} "
            f"amount={transaction.amount} {transaction.currency}"
        )
        return transaction

    async def _grant_enrollment(self, transaction: Transaction) -> Enrollment:
        """Create the enrollment or reactivate a dropped one."""
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.user_id == transaction.user_id,
                Enrollment.course_id == transaction.course_id,
            )
        )
        enrollment = result.scalars().first()

        if enrollment:
            enrollment.status = EnrollmentStatus.ACTIVE
            enrollment.transaction_id = transaction.id
            enrollment.enrolled_at = utc_now()
            enrollment.completed_at = None
        else:
            enrollment = Enrollment(
                user_id=transaction.user_id,
                course_id=transaction.course_id,
                transaction_id=transaction.id,
            )
        self.db.add(enrollment)
        await self.db.flush()
        return enrollment

    # ============ Queries ============

    async def get_by_payment_id(self, gateway_payment_id: str) -> Transaction | None:
        """Get transaction by gateway payment ID."""
        result = await self.db.execute(
            select(Transaction).where(Transaction.gateway_payment_id == gateway_payment_id)
        )
        return result.scalars().first()

    async def list_history(self, payer_id: uuid.UUID) -> list[dict[str, Any]]:
        """List the payer's transactions, newest first.

        Returns:
            List of {id, amount, status, date, course_name}
        """
        result = await self.db.execute(
            select(Transaction, Course.name)
            .join(Course, Course.id == Transaction.course_id)
            .where(Transaction.user_id == payer_id)
            .order_by(Transaction.created_at.desc())
        )
        return [
            {
                "id": transaction.id,
                "amount": transaction.amount,
                "status": transaction.status,
                "date": transaction.created_at,
                "course_name": course_name,
            }
            for transaction, course_name in result.all()
        ]
