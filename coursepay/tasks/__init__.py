"""CoursePay Tasks Module."""

from coursepay.tasks.celery_app import celery_app
from coursepay.tasks.refunds import sync_refund_status

__all__ = [
    "celery_app",
    "sync_refund_status",
]
