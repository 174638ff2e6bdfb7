"""Celery application for outbound email and the nightly integrity sweep."""

from celery import Celery
from celery.schedules import crontab

from sentinel_worker.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "sentinel_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    beat_schedule={
        "verify-emission-readings": {
            "task": "sentinel_worker.tasks.verify_readings",
            "schedule": crontab(hour=settings.integrity_sweep_hour_utc, minute=0),
        },
    },
)

# Registers tasks; must follow celery_app creation
from sentinel_worker import tasks  # noqa: F401, E402
