"""Authority API key model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from sentinel_api.db.base import Base


class ApiKey(Base):
    """API key bound to one authority role and its subject."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    prefix = Column(String(16), nullable=False, index=True)
    digest = Column(String(255), nullable=False, unique=True)
    label = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False)  # device, police_officer, station_authority, court_authority, judge
    station_id = Column(Integer, nullable=True)
    court_id = Column(Integer, nullable=True)
    officer_id = Column(Integer, nullable=True)
    judge_id = Column(Integer, nullable=True)
    device_id = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
