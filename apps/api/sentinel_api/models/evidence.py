"""Emission reading and integrity flag models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from sentinel_api.db.base import Base


class EmissionReading(Base):
    """Signed device measurement. Immutable once signed."""

    __tablename__ = "emission_readings"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Integer, ForeignKey("iot_devices.id"), nullable=False, index=True)
    co = Column(Numeric(10, 2), nullable=True)
    co2 = Column(Numeric(10, 2), nullable=True)
    hc = Column(Numeric(10, 2), nullable=True)
    nox = Column(Numeric(10, 2), nullable=True)
    sound_level_dba = Column(Numeric(6, 2), nullable=False)
    captured_at = Column(DateTime, nullable=False, index=True)
    ml_classification = Column(String(100), nullable=True)

    # Signature over the canonical form
    signature_value = Column(Text, nullable=False)
    signature_alg = Column(String(50), nullable=False)  # HMAC-SHA256, RSA-PSS-SHA256
    signature_key_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class IntegrityFlag(Base):
    """Recorded signature mismatch for a stored reading."""

    __tablename__ = "integrity_flags"

    id = Column(Integer, primary_key=True, index=True)
    reading_id = Column(Integer, ForeignKey("emission_readings.id"), nullable=False, index=True)
    stored_signature = Column(Text, nullable=False)
    computed_signature = Column(Text, nullable=True)  # NULL for asymmetric keys
    detected_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    reviewed = Column(Boolean, default=False, nullable=False)
