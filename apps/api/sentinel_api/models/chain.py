"""Chain models: Challan -> FIR -> Case, plus case statements.

Links are plain foreign-key columns; 1:1 edges are backed by UNIQUE constraints.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from sentinel_api.db.base import Base


class Challan(Base):
    """Traffic challan. Only status is mutable after filing."""

    __tablename__ = "challans"

    id = Column(Integer, primary_key=True, index=True)
    officer_id = Column(Integer, ForeignKey("police_officers.id"), nullable=False, index=True)
    accused_id = Column(Integer, ForeignKey("accused.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    violation_id = Column(Integer, ForeignKey("violations.id"), nullable=False)
    emission_reading_id = Column(
        Integer, ForeignKey("emission_readings.id"), nullable=True, unique=True
    )
    issued_at = Column(DateTime, nullable=False)
    due_at = Column(DateTime, nullable=False)
    status = Column(String(50), default="Unpaid", nullable=False)  # Unpaid, Paid, Disputed
    signature_value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Fir(Base):
    """First Information Report minted from exactly one challan."""

    __tablename__ = "firs"
    __table_args__ = (
        UniqueConstraint("station_id", "year", "sequence", name="uq_fir_station_year_sequence"),
        UniqueConstraint("station_id", "fir_no", name="uq_fir_station_fir_no"),
    )

    id = Column(Integer, primary_key=True, index=True)
    fir_no = Column(String(100), nullable=False, index=True)
    station_id = Column(Integer, ForeignKey("police_stations.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    challan_id = Column(Integer, ForeignKey("challans.id"), nullable=False, unique=True)
    informant_id = Column(Integer, ForeignKey("police_officers.id"), nullable=False)
    filed_at = Column(DateTime, nullable=False)
    status = Column(String(50), default="Filed", nullable=False)
    description = Column(Text, nullable=True)
    investigation_report = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Case(Base):
    """Court case opened from exactly one FIR."""

    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("court_id", "year", "sequence", name="uq_case_court_year_sequence"),
        UniqueConstraint("court_id", "case_no", name="uq_case_court_case_no"),
    )

    id = Column(Integer, primary_key=True, index=True)
    case_no = Column(String(100), nullable=False, index=True)
    fir_id = Column(Integer, ForeignKey("firs.id"), nullable=False, unique=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    judge_id = Column(Integer, ForeignKey("judges.id"), nullable=False, index=True)
    case_type = Column(String(100), default="Traffic Violation", nullable=False)
    status = Column(String(50), default="Pending", nullable=False)
    hearing_date = Column(DateTime, nullable=True)
    filed_at = Column(DateTime, nullable=False)
    verdict = Column(Text, nullable=True)
    verdict_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class CaseStatement(Base):
    """Statement recorded on a case by its judge."""

    __tablename__ = "case_statements"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    statement_by = Column(String(255), nullable=False)
    statement_text = Column(Text, nullable=False)
    statement_date = Column(DateTime, default=datetime.utcnow, nullable=False)
