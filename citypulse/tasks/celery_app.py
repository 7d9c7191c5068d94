"""
Celery application for booking emails.

Workers consume the ``emails`` queue; start one with ``python scripts.py worker``.
"""

from celery import Celery
from ..config import get_settings

settings = get_settings()

EMAIL_QUEUE = "emails"

celery_app = Celery(
    "citypulse",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["citypulse.tasks.notification_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Results are kept for failures only
    task_ignore_result=True,
    task_store_errors_even_if_ignored=True,
    task_default_queue=EMAIL_QUEUE,
    task_routes={"send_*_email_task": {"queue": EMAIL_QUEUE}},
    # SMTP sends with a PDF attachment
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    # Redelivered if the worker dies mid-send
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)
