"""Refund status sync tasks.

Replays the local refund write after the gateway accepted a refund but the
request could not record it, then refreshes the refund status from the
gateway.
"""

import asyncio
import logging
import uuid
from typing import Any

from coursepay.core.config import get_settings
from coursepay.db.engine import Database
from coursepay.services.razorpay_service import RazorpayService
from coursepay.services.refund_service import RefundService, parse_refund_status
from coursepay.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="refunds.sync_refund_status",
    bind=True,
    max_retries=10,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=3600,
)
def sync_refund_status(
    self,
    payment_id: str,
    refund: dict[str, Any],
    reason: str,
    requested_by: str | None = None,
) -> dict:
    """Record a gateway refund locally and sync its status."""
    settings = get_settings()
    database = Database.from_settings(settings)
    gateway = RazorpayService.from_settings(settings)
    return asyncio.run(
        _sync_refund_status(database, gateway, payment_id, refund, reason, requested_by)
    )


async def _sync_refund_status(
    database: Database,
    gateway: RazorpayService,
    payment_id: str,
    refund: dict[str, Any],
    reason: str,
    requested_by: str | None = None,
) -> dict:
    try:
        async with database.session() as db:
            service = RefundService(db, gateway)
            recorded = await service.apply_refund(
                payment_id,
                refund,
                reason,
                uuid.UUID(requested_by) if requested_by else None,
            )

            gateway_refund = await gateway.fetch_refund(payment_id, recorded.gateway_refund_id)
            status = parse_refund_status(gateway_refund.get("status"))
            if recorded.status != status:
                await service.mark_refund_status(recorded.gateway_refund_id, status)

            logger.info(f"Refund {recorded.gateway_refund_id} synced for payment {payment_id}")
            return {
                "success": True,
                "refund_id": recorded.gateway_refund_id,
                "status": status.value,
            }
    except Exception as e:
        logger.exception(f"Refund sync failed for payment {payment_id}: {e}")
        raise
    finally:
        await gateway.close()
        await database.dispose()
