"""Celery configuration.

Usage:
    celery -A coursepay.tasks.celery_app worker -Q refunds -l info
"""

from celery import Celery

from coursepay.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "coursepay_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "coursepay.tasks.refunds",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    task_default_retry_delay=60,
    task_routes={
        "refunds.*": {"queue": "refunds"},
    },
)
