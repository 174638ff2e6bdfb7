"""Tests for reading ingestion and integrity verification."""

from datetime import timedelta
from decimal import Decimal

import pytest

from sentinel_api import errors
from sentinel_api.models import EmissionReading, IntegrityFlag


def test_ingest_signs_quantized_values(reading, signature_engine):
    assert reading.sound_level_dba == Decimal("92.50")
    assert reading.co2 == Decimal("412.50")
    assert reading.co is None
    assert reading.signature_alg == "HMAC-SHA256"
    assert reading.signature_key_id == "test-hmac-key"
    assert signature_engine.verify_reading(reading)


def test_ingest_rejects_unusable_devices(reading_service, registry, clock):
    with pytest.raises(errors.ValidationError, match="not calibrated"):
        reading_service.ingest(registry.uncalibrated.id, 90, clock())
    with pytest.raises(errors.ValidationError, match="not registered"):
        reading_service.ingest(registry.unregistered.id, 90, clock())
    with pytest.raises(errors.NotFoundError):
        reading_service.ingest(999, 90, clock())


def test_ingest_rejects_bad_values(reading_service, registry, clock):
    with pytest.raises(errors.ValidationError, match="non-negative"):
        reading_service.ingest(registry.device.id, Decimal("-1"), clock())
    with pytest.raises(errors.ValidationError, match="future"):
        reading_service.ingest(registry.device.id, 90, clock() + timedelta(seconds=1))


def test_duplicate_window(reading_service, registry, reading, db):
    """A second capture from the device within five minutes is a duplicate."""
    with pytest.raises(errors.ValidationError, match="duplicate"):
        reading_service.ingest(
            registry.device.id, 90, reading.captured_at - timedelta(minutes=4, seconds=59)
        )

    later = reading_service.ingest(registry.device.id, 90, reading.captured_at - timedelta(minutes=5))
    assert later.id != reading.id
    assert db.query(EmissionReading).count() == 2


def test_is_violation_is_strictly_above_limit(reading_service):
    assert not reading_service.is_violation(Decimal("85.00"))
    assert reading_service.is_violation(Decimal("85.01"))


def test_verify_integrity_of_untouched_reading(reading_service, reading, db):
    result = reading_service.verify_integrity(reading.id)

    assert result["is_authentic"] is True
    assert result["computed_signature"] == result["stored_signature"]
    assert result["flag_id"] is None
    assert result["is_violation"] is True
    assert result["has_challan"] is False
    assert db.query(IntegrityFlag).count() == 0


def test_verify_integrity_flags_tampering_once(reading_service, reading, db):
    reading.sound_level_dba = Decimal("70.00")
    db.commit()

    first = reading_service.verify_integrity(reading.id)
    second = reading_service.verify_integrity(reading.id)

    assert first["is_authentic"] is False
    assert first["computed_signature"] != first["stored_signature"]
    assert first["flag_id"] is not None
    assert second["flag_id"] == first["flag_id"]

    flag = db.get(IntegrityFlag, first["flag_id"])
    assert flag.stored_signature == reading.signature_value
    assert flag.reviewed is False


def test_verify_all_reports_flagged_readings(reading_service, registry, reading, clock, db):
    other = reading_service.ingest(registry.device.id, 80, clock() - timedelta(hours=1))
    other.co = Decimal("1.00")
    db.commit()

    result = reading_service.verify_all(batch_size=1)

    assert result == {"checked": 2, "flagged": [other.id]}
