from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from app.config import settings
from app.logging import configure_logging

celery_app = Celery(
    "document_control",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.events", "app.tasks.reviews"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "auto-trigger-overdue-reviews": {
        "task": "app.tasks.reviews.auto_trigger_overdue_reviews",
        "schedule": crontab(hour=settings.overdue_review_cron_hour, minute=0),
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()
