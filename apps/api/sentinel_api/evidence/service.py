"""Emission reading ingestion and integrity verification."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sentinel_api import repository
from sentinel_api.errors import ValidationError
from sentinel_api.integrity.canonical import normalize_timestamp, quantize, reading_payload
from sentinel_api.integrity.engine import SignatureEngine, get_signature_engine
from sentinel_api.models import EmissionReading, IntegrityFlag
from sentinel_api.services.base import BaseService
from sentinel_api.utils.metrics import integrity_violations, readings_signed

logger = logging.getLogger(__name__)


class EmissionReadingService(BaseService):
    """Accept device readings, sign them, and re-verify them on demand."""

    def __init__(self, db, settings=None, clock=None, engine: Optional[SignatureEngine] = None):
        """Initialize reading service."""
        super().__init__(db, settings=settings, clock=clock)
        self.engine = engine or get_signature_engine()

    def is_violation(self, sound_level_dba) -> bool:
        """Reading exceeds the legal sound limit."""
        return quantize(sound_level_dba) > quantize(self.settings.legal_sound_limit_dba)

    def ingest(
        self,
        device_id: int,
        sound_level_dba,
        captured_at: datetime,
        co=None,
        co2=None,
        hc=None,
        nox=None,
        ml_classification: Optional[str] = None,
    ) -> EmissionReading:
        """Validate, sign and store a reading from a registered, calibrated device."""
        device = repository.get_device(self.db, device_id)
        if not device.is_registered:
            raise ValidationError(f"Device '{device.device_name}' is not registered")
        if not device.is_calibrated:
            raise ValidationError(f"Device '{device.device_name}' is not calibrated")
        if sound_level_dba is None or quantize(sound_level_dba) < 0:
            raise ValidationError("Sound level must be a non-negative number")

        captured_at = normalize_timestamp(captured_at)
        if captured_at > self.now():
            raise ValidationError("Capture time cannot be in the future")

        window = timedelta(minutes=self.settings.duplicate_reading_window_minutes)
        duplicate = (
            self.db.query(EmissionReading.id)
            .filter(
                EmissionReading.device_id == device_id,
                EmissionReading.captured_at > captured_at - window,
                EmissionReading.captured_at < captured_at + window,
            )
            .first()
        )
        if duplicate:
            raise ValidationError(
                f"Device '{device.device_name}' already reported within "
                f"{self.settings.duplicate_reading_window_minutes} minutes of this capture; possible duplicate"
            )

        # Quantize before signing so the stored row recomputes to the signed bytes
        reading = EmissionReading(
            device_id=device_id,
            co=quantize(co),
            co2=quantize(co2),
            hc=quantize(hc),
            nox=quantize(nox),
            sound_level_dba=quantize(sound_level_dba),
            captured_at=captured_at,
            ml_classification=ml_classification,
            signature_alg=self.engine.algorithm,
            signature_key_id=self.engine.key_id,
        )
        reading.signature_value = self.engine.sign_reading(reading)
        self.db.add(reading)
        self.db.commit()
        self.db.refresh(reading)

        readings_signed.labels(algorithm=reading.signature_alg).inc()
        logger.info(
            f"Emission reading {reading.id} signed for device {device_id}",
            extra={
                "reading_id": reading.id,
                "device_id": device_id,
                "is_violation": self.is_violation(reading.sound_level_dba),
            },
        )
        return reading

    def _record_flag(self, reading: EmissionReading, computed: Optional[str]) -> IntegrityFlag:
        flag = (
            self.db.query(IntegrityFlag)
            .filter(IntegrityFlag.reading_id == reading.id, IntegrityFlag.reviewed.is_(False))
            .first()
        )
        if flag is None:
            flag = IntegrityFlag(
                reading_id=reading.id,
                stored_signature=reading.signature_value or "",
                computed_signature=computed,
                detected_at=self.now(),
            )
            self.db.add(flag)
            self.db.commit()
            self.db.refresh(flag)
        return flag

    def verify_integrity(self, reading_id: int) -> dict:
        """Re-verify a stored reading.

        A mismatch is reported in the result and recorded as an IntegrityFlag;
        it is not raised.
        """
        reading = repository.get_reading(self.db, reading_id)
        is_authentic = self.engine.verify_reading(reading)

        computed = None
        if self.engine.deterministic and reading.signature_alg == self.engine.algorithm:
            computed = self.engine.sign(reading_payload(reading))

        flag = None
        if not is_authentic:
            integrity_violations.labels(record_type="emission_reading").inc()
            logger.warning(
                f"Integrity violation on emission reading {reading.id}",
                extra={"reading_id": reading.id, "device_id": reading.device_id},
            )
            flag = self._record_flag(reading, computed)

        return {
            "reading": reading,
            "is_authentic": is_authentic,
            "stored_signature": reading.signature_value,
            "computed_signature": computed,
            "signature_alg": reading.signature_alg,
            "key_id": reading.signature_key_id,
            "verified_at": self.now(),
            "flag_id": flag.id if flag else None,
            "is_violation": self.is_violation(reading.sound_level_dba),
            "has_challan": repository.reading_has_challan(self.db, reading.id),
        }

    def verify_all(self, batch_size: int = 500) -> dict:
        """Re-verify every stored reading and flag mismatches."""
        checked = 0
        flagged = []
        last_id = 0
        while True:
            batch = (
                self.db.query(EmissionReading)
                .filter(EmissionReading.id > last_id)
                .order_by(EmissionReading.id.asc())
                .limit(batch_size)
                .all()
            )
            if not batch:
                break
            for reading in batch:
                checked += 1
                if not self.engine.verify_reading(reading):
                    integrity_violations.labels(record_type="emission_reading").inc()
                    logger.warning(
                        f"Integrity violation on emission reading {reading.id}",
                        extra={"reading_id": reading.id, "device_id": reading.device_id},
                    )
                    computed = None
                    if self.engine.deterministic and reading.signature_alg == self.engine.algorithm:
                        computed = self.engine.sign(reading_payload(reading))
                    self._record_flag(reading, computed)
                    flagged.append(reading.id)
            last_id = batch[-1].id
        return {"checked": checked, "flagged": flagged}
