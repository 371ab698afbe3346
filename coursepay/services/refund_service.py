"""CoursePay - Refund service.

Issues full or partial refunds through the gateway and mirrors them in the
local records. The gateway call and the local write cannot share a
transaction: when the local write fails after the gateway accepted the
refund, ReconciliationRequiredError carries the gateway refund so the
status sync job can replay apply_refund().
"""

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, select

from coursepay.core.exceptions import (
    AuthorizationError,
    ReconciliationRequiredError,
    TransactionNotFoundError,
    ValidationError,
)
from coursepay.models.enrollment import Enrollment, EnrollmentStatus
from coursepay.models.refund import Refund, RefundSpeed, RefundStatus
from coursepay.models.transaction import Transaction, TransactionStatus
from coursepay.models.user import User
from coursepay.schemas.payment import DEFAULT_REFUND_REASON, PaymentErrorCode
from coursepay.services.razorpay_service import RazorpayService
from coursepay.utils.amount import from_minor_units, quantize_amount
from coursepay.utils.helpers import utc_now

logger = logging.getLogger(__name__)


def parse_refund_status(value: Any) -> RefundStatus:
    """Map a gateway refund status; unknown values count as pending."""
    try:
        return RefundStatus(value)
    except ValueError:
        return RefundStatus.PENDING


def _parse_refund_speed(value: Any) -> RefundSpeed:
    try:
        return RefundSpeed(value)
    except ValueError:
        return RefundSpeed.NORMAL


class RefundService:
    """Service for refunding settled payments."""

    def __init__(self, db: AsyncSession, gateway: RazorpayService) -> None:
        self.db = db
        self.gateway = gateway

    async def refund(
        self,
        payment_id: str,
        requested_by: User,
        reason: str = DEFAULT_REFUND_REASON,
        amount: Decimal | None = None,
        speed: RefundSpeed = RefundSpeed.NORMAL,
    ) -> Refund:
        """Refund a completed payment.

        Args:
            payment_id: Gateway payment ID of the completed transaction
            requested_by: Payer of the transaction or an admin
            reason: Refund reason, stored locally and on the gateway refund
            amount: Partial amount in major units; None refunds in full
            speed: Gateway refund speed

        Returns:
            Persisted Refund

        Raises:
            TransactionNotFoundError: No completed transaction for the payment
            AuthorizationError: Requester is neither the payer nor an admin
            ValidationError: Amount outside (0, transaction amount]
            GatewayError: Gateway refused the refund; nothing changed locally
            ReconciliationRequiredError: Gateway refunded, local write failed
        """
        transaction = await self._get_transaction(
            payment_id, TransactionStatus.COMPLETED, for_update=True
        )
        if not transaction:
            raise TransactionNotFoundError(payment_id)

        if transaction.user_id != requested_by.id and not requested_by.is_admin:
            logger.warning(f"User {requested_by.id} denied refund of payment {payment_id}")
            raise AuthorizationError("Not allowed to refund this payment")

        if amount is not None:
            amount = quantize_amount(amount)
            if amount <= 0 or amount > transaction.amount:
                raise ValidationError(
                    f"Refund amount must be greater than 0 and at most {transaction.amount}",
                    {"amount": str(amount), "max_amount": str(transaction.amount)},
                    code=PaymentErrorCode.INVALID_REFUND_AMOUNT,
                )

        gateway_refund = await self.gateway.refund_payment(
            payment_id,
            amount=amount,
            speed=speed.value,
            notes={"reason": reason, "refundedBy": str(requested_by.id)},
        )
        logger.info(
            f"Gateway refund {gateway_refund.get('id')} issued for payment {payment_id} "
            f"by {requested_by.id}"
        )

        try:
            return await self.apply_refund(
                payment_id, gateway_refund, reason, requested_by.id
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(
                f"Refund {gateway_refund.get('id')} issued but local update failed "
                f"for payment {payment_id}"
            )
            raise ReconciliationRequiredError(payment_id, gateway_refund, reason) from e

    async def apply_refund(
        self,
        payment_id: str,
        gateway_refund: dict[str, Any],
        reason: str,
        requested_by: uuid.UUID | None = None,
    ) -> Refund:
        """Record a gateway refund locally.

        Idempotent: a refund already recorded under its gateway id is
        returned unchanged.

        Raises:
            TransactionNotFoundError: No transaction for the payment
        """
        gateway_refund_id = gateway_refund["id"]
        existing = await self.get_by_gateway_refund_id(gateway_refund_id)
        if existing:
            return existing

        transaction = await self._get_transaction(payment_id)
        if not transaction:
            raise TransactionNotFoundError(payment_id)

        if gateway_refund.get("amount") is not None:
            refund_amount = from_minor_units(int(gateway_refund["amount"]))
        else:
            refund_amount = transaction.amount

        # Earlier refunds of this payment may have been recorded first
        refunded_total = await self._refunded_total(transaction) + refund_amount

        now = utc_now()
        transaction.status = TransactionStatus.REFUNDED
        transaction.refund_reason = reason
        transaction.refunded_at = now
        transaction.refunded_amount = refunded_total
        transaction.updated_at = now
        self.db.add(transaction)

        refund = Refund(
            transaction_id=transaction.id,
            gateway_refund_id=gateway_refund_id,
            amount=refund_amount,
            currency=str(gateway_refund.get("currency") or transaction.currency).upper(),
            speed=_parse_refund_speed(
                gateway_refund.get("speed_requested") or gateway_refund.get("speed")
            ),
            status=parse_refund_status(gateway_refund.get("status")),
            reason=reason,
            requested_by=requested_by,
        )
        self.db.add(refund)

        # Refunding the full amount revokes course access
        if refunded_total >= transaction.amount:
            await self._drop_enrollment(transaction)

        await self.db.commit()
        await self.db.refresh(refund)

        logger.info(
            f"Refund recorded refund_id={gateway_refund_id} payment_id={payment_id} "
            f"amount={refund_amount} {refund.currency}"
        )
        return refund

    async def get_refund_status(
        self, payment_id: str, refund_id: str, requested_by: User
    ) -> dict[str, Any]:
        """Fetch a refund from the gateway and refresh its local status.

        Returns:
            Gateway refund descriptor
        """
        transaction = await self._get_transaction(payment_id)
        if not transaction:
            raise TransactionNotFoundError(payment_id)
        if transaction.user_id != requested_by.id and not requested_by.is_admin:
            raise AuthorizationError("Not allowed to view this refund")

        gateway_refund = await self.gateway.fetch_refund(payment_id, refund_id)

        refund = await self.get_by_gateway_refund_id(refund_id)
        if refund:
            status = parse_refund_status(gateway_refund.get("status"))
            if refund.status != status:
                refund.status = status
                refund.updated_at = utc_now()
                self.db.add(refund)
                await self.db.commit()
        return gateway_refund

    async def mark_refund_status(
        self, gateway_refund_id: str, status: RefundStatus
    ) -> Refund | None:
        """Update a recorded refund's status from a gateway webhook.

        Returns:
            Updated Refund, or None if the refund is not recorded
        """
        refund = await self.get_by_gateway_refund_id(gateway_refund_id)
        if not refund:
            logger.warning(f"Refund webhook for unknown refund {gateway_refund_id}")
            return None

        refund.status = status
        refund.updated_at = utc_now()
        self.db.add(refund)
        await self.db.commit()
        await self.db.refresh(refund)

        if status == RefundStatus.FAILED:
            logger.error(f"Gateway reports refund {gateway_refund_id} failed")
        else:
            logger.info(f"Refund {gateway_refund_id} status={status.value}")
        return refund

    # ============ Queries ============

    async def get_by_gateway_refund_id(self, gateway_refund_id: str) -> Refund | None:
        """Get refund by gateway refund ID."""
        result = await self.db.execute(
            select(Refund).where(Refund.gateway_refund_id == gateway_refund_id)
        )
        return result.scalars().first()

    async def _get_transaction(
        self,
        payment_id: str,
        status: TransactionStatus | None = None,
        for_update: bool = False,
    ) -> Transaction | None:
        query = select(Transaction).where(Transaction.gateway_payment_id == payment_id)
        if status is not None:
            query = query.where(Transaction.status == status)
        if for_update:
            # Serializes concurrent refunds of one payment
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalars().first()

    async def _refunded_total(self, transaction: Transaction) -> Decimal:
        """Sum of the refunds already recorded for a transaction."""
        result = await self.db.execute(
            select(func.sum(Refund.amount)).where(Refund.transaction_id == transaction.id)
        )
        total = result.scalar()
        return quantize_amount(total) if total is not None else Decimal("0.00")

    async def _drop_enrollment(self, transaction: Transaction) -> None:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.user_id == transaction.user_id,
                Enrollment.course_id == transaction.course_id,
            )
        )
        enrollment = result.scalars().first()
        if enrollment:
            enrollment.status = EnrollmentStatus.DROPPED
            self.db.add(enrollment)
