"""Registry models consumed by the chain (stations, courts, people, vehicles, devices)."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from sentinel_api.db.base import Base


class PoliceStation(Base):
    """Police station; scopes FIR numbering."""

    __tablename__ = "police_stations"

    id = Column(Integer, primary_key=True, index=True)
    station_name = Column(String(255), nullable=False)
    station_code = Column(String(50), nullable=False, unique=True, index=True)
    location = Column(String(255), nullable=True)
    district = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Court(Base):
    """Court; scopes Case numbering."""

    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    court_name = Column(String(255), nullable=False)
    court_type = Column(String(100), nullable=True)  # Supreme Court, High Court, District Court, ...
    location = Column(String(255), nullable=True)  # city
    district = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PoliceOfficer(Base):
    """Police officer posted at a station."""

    __tablename__ = "police_officers"

    id = Column(Integer, primary_key=True, index=True)
    station_id = Column(Integer, ForeignKey("police_stations.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    badge_number = Column(String(50), nullable=True, unique=True)
    rank = Column(String(100), nullable=True)
    is_investigation_officer = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Judge(Base):
    """Judge serving at a court."""

    __tablename__ = "judges"

    id = Column(Integer, primary_key=True, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    rank = Column(String(100), nullable=True)
    service_status = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Accused(Base):
    """Person a challan is issued against."""

    __tablename__ = "accused"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    cnic = Column(String(20), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    contact = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Vehicle(Base):
    """Registered vehicle; plate numbers are stored as entered."""

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    plate_number = Column(String(50), nullable=False, index=True)
    make = Column(String(100), nullable=True)
    color = Column(String(50), nullable=True)
    chassis_no = Column(String(100), nullable=True)
    engine_no = Column(String(100), nullable=True)
    registration_year = Column(Integer, nullable=True)
    owner_id = Column(Integer, ForeignKey("accused.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Violation(Base):
    """Violation catalogue entry."""

    __tablename__ = "violations"

    id = Column(Integer, primary_key=True, index=True)
    violation_type = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    penalty_amount = Column(Numeric(12, 2), nullable=True)
    section_of_law = Column(String(255), nullable=True)
    is_cognizable = Column(Boolean, default=False, nullable=False)


class IotDevice(Base):
    """Roadside noise/emission measurement device."""

    __tablename__ = "iot_devices"

    id = Column(Integer, primary_key=True, index=True)
    device_name = Column(String(255), nullable=False, unique=True)
    firmware_version = Column(String(50), nullable=True)
    is_registered = Column(Boolean, default=False, nullable=False)
    is_calibrated = Column(Boolean, default=False, nullable=False)
    calibration_date = Column(DateTime, nullable=True)
    calibration_certificate_no = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    paired_officer_id = Column(Integer, ForeignKey("police_officers.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
