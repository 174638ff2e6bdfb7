"""Public status OTP model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from sentinel_api.db.base import Base


class PublicStatusOtp(Base):
    """One OTP challenge for a (vehicle, cnic) pair and the token it unlocks."""

    __tablename__ = "public_status_otps"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_no = Column(String(50), nullable=False, index=True)  # normalized plate
    cnic = Column(String(20), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    code_digest = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime, nullable=True)
    failed_attempts = Column(Integer, default=0, nullable=False)
    access_token_digest = Column(String(255), nullable=True, unique=True, index=True)
    access_token_expires_at = Column(DateTime, nullable=True)
