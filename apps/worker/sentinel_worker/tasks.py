"""Celery tasks for async operations."""

import logging
from typing import Optional

from celery import Task
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from sqlalchemy.orm import Session

from sentinel_worker.celery_app import celery_app
from sentinel_worker.db import get_db
from sentinel_worker.settings import get_settings

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Task with database session."""

    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        """Get database session."""
        if self._db is None:
            self._db = next(get_db())
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task."""
        if self._db:
            self._db.close()
            self._db = None


def render_status_otp_email(code: str, vehicle_no: str, expires_in_minutes: int) -> str:
    """HTML body for the public status OTP email."""
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px;">
        <h2 style="color: #1F2937;">NoiseSentinel Case Status Verification</h2>
        <p>A request was made to view the case status of vehicle <strong>{vehicle_no}</strong>.</p>
        <p>
            Your one-time verification code is: <br>
            <span style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{code}</span>
        </p>
        <p>This code expires in {expires_in_minutes} minutes and can be used once.
        If you did not request it, you can ignore this email.</p>
    </div>
    """


@celery_app.task(
    bind=True,
    max_retries=3,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True,
)
def send_status_otp_email(self, to_email: str, code: str, vehicle_no: str, expires_in_minutes: int):
    """Send the public status OTP through SendGrid, retrying on failure."""
    settings = get_settings()
    log_extra = {"task": "send_status_otp_email", "attempt": self.request.retries + 1}

    if not settings.sendgrid_api_key:
        logger.warning("SENDGRID_API_KEY not configured; status OTP email not sent", extra=log_extra)
        return {"sent": False, "reason": "not_configured"}

    message = Mail(
        from_email=(settings.from_email, settings.from_name),
        to_emails=to_email,
        subject="NoiseSentinel - Case Status Verification Code",
        html_content=render_status_otp_email(code, vehicle_no, expires_in_minutes),
    )

    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:
        logger.error(f"Failed to send status OTP email: {e}", exc_info=True, extra=log_extra)
        raise

    logger.info(f"Status OTP email sent, status {response.status_code}", extra=log_extra)
    return {"sent": True, "status_code": response.status_code}


@celery_app.task(base=DatabaseTask, bind=True)
def verify_readings(self):
    """Re-verify stored emission readings and flag signature mismatches."""
    from sentinel_api.evidence.service import EmissionReadingService

    settings = get_settings()
    service = EmissionReadingService(self.db)
    result = service.verify_all(batch_size=settings.integrity_sweep_batch_size)
    if result["flagged"]:
        logger.warning(
            f"Integrity sweep flagged {len(result['flagged'])} of {result['checked']} readings",
            extra={"task": "verify_readings", "flagged": result["flagged"]},
        )
    else:
        logger.info(
            f"Integrity sweep verified {result['checked']} readings",
            extra={"task": "verify_readings"},
        )
    return result
