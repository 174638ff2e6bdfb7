"""Enqueue outbound emails on the worker."""

import logging

from sentinel_api.celery_client import get_celery_app

logger = logging.getLogger(__name__)

SEND_STATUS_OTP_TASK = "sentinel_worker.tasks.send_status_otp_email"


def enqueue_status_otp_email(to_email: str, code: str, vehicle_no: str, expires_in_minutes: int) -> str:
    """Queue the status OTP email; returns the Celery task id."""
    celery_app = get_celery_app()
    result = celery_app.send_task(
        SEND_STATUS_OTP_TASK,
        kwargs={
            "to_email": to_email,
            "code": code,
            "vehicle_no": vehicle_no,
            "expires_in_minutes": expires_in_minutes,
        },
    )
    logger.info("Queued status OTP email", extra={"task_id": result.id})
    return result.id
