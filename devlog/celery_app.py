"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from devlog.config import get_settings

settings = get_settings()

app = Celery(
    "devlog",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["devlog.tasks.summary_tasks"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Rate limiting for paid generation calls
    task_default_rate_limit="10/m",
    result_expires=3600,  # 1 hour
    beat_schedule={
        "generate-previous-day-summaries": {
            "task": "summary_tasks.generate_previous_day_summaries",
            "schedule": crontab(hour=0, minute=30),
        },
    },
)
