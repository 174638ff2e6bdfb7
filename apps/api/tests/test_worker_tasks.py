"""Tests for worker tasks and the enqueue side of the API."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from sentinel_api.evidence.service import EmissionReadingService
from sentinel_api.notifications.email import SEND_STATUS_OTP_TASK, enqueue_status_otp_email
from sentinel_worker.settings import Settings as WorkerSettings
from sentinel_worker.tasks import render_status_otp_email, send_status_otp_email, verify_readings


def test_enqueue_uses_worker_task_name():
    celery_app = MagicMock()
    celery_app.send_task.return_value.id = "task-123"

    with patch("sentinel_api.notifications.email.get_celery_app", return_value=celery_app):
        task_id = enqueue_status_otp_email("bilal.ahmed@example.com", "123456", "LEB-123", 10)

    assert task_id == "task-123"
    celery_app.send_task.assert_called_once_with(
        SEND_STATUS_OTP_TASK,
        kwargs={
            "to_email": "bilal.ahmed@example.com",
            "code": "123456",
            "vehicle_no": "LEB-123",
            "expires_in_minutes": 10,
        },
    )
    assert SEND_STATUS_OTP_TASK == send_status_otp_email.name


def test_render_status_otp_email():
    html = render_status_otp_email("048213", "LEB-123", 10)
    assert "048213" in html
    assert "LEB-123" in html
    assert "10 minutes" in html


@patch("sentinel_worker.tasks.get_settings")
def test_send_without_api_key(mock_settings):
    mock_settings.return_value = WorkerSettings(sendgrid_api_key=None)

    result = send_status_otp_email("bilal.ahmed@example.com", "123456", "LEB-123", 10)

    assert result == {"sent": False, "reason": "not_configured"}


@patch("sentinel_worker.tasks.SendGridAPIClient")
@patch("sentinel_worker.tasks.get_settings")
def test_send_through_sendgrid(mock_settings, mock_client):
    mock_settings.return_value = WorkerSettings(sendgrid_api_key="SG.test")
    mock_client.return_value.send.return_value.status_code = 202

    result = send_status_otp_email("bilal.ahmed@example.com", "123456", "LEB-123", 10)

    assert result == {"sent": True, "status_code": 202}
    mock_client.assert_called_once_with("SG.test")
    message = mock_client.return_value.send.call_args.args[0]
    assert message.subject.subject == "NoiseSentinel - Case Status Verification Code"


@patch("sentinel_worker.tasks.SendGridAPIClient")
@patch("sentinel_worker.tasks.get_settings")
def test_send_failure_propagates(mock_settings, mock_client):
    mock_settings.return_value = WorkerSettings(sendgrid_api_key="SG.test")
    mock_client.return_value.send.side_effect = RuntimeError("SendGrid unavailable")

    with pytest.raises(RuntimeError):
        send_status_otp_email("bilal.ahmed@example.com", "123456", "LEB-123", 10)


def test_verify_readings_task(db, registry, clock):
    """The sweep re-verifies readings with the configured signing provider."""
    service = EmissionReadingService(db, clock=clock)
    good = service.ingest(registry.device.id, Decimal("90"), clock() - timedelta(hours=2))
    bad = service.ingest(registry.device.id, Decimal("95"), clock() - timedelta(hours=1))
    bad.sound_level_dba = Decimal("60.00")
    db.commit()

    def shared_session():
        yield db

    try:
        with patch("sentinel_worker.tasks.get_db", shared_session):
            result = verify_readings()
    finally:
        verify_readings._db = None

    assert result == {"checked": 2, "flagged": [bad.id]}
    assert good.id != bad.id
