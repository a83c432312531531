"""Celery worker configuration."""

from celery import Celery
from celery.schedules import crontab

from taskflow.config import get_settings
from taskflow.logging_config import configure_logging

settings = get_settings()
configure_logging(settings)

# Create Celery app
celery_app = Celery(
    "taskflow",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,  # 9 minutes
    beat_schedule={
        "process-recurring-tasks-daily": {
            "task": "taskflow.tasks.process_recurring_tasks",
            "schedule": crontab(hour=0, minute=0),
        },
    },
)

# Auto-discover tasks from taskflow.tasks module
celery_app.autodiscover_tasks(["taskflow"])
