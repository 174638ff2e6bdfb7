"""Narrow persistence accessors used by chain and public status services."""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sentinel_api.errors import NotFoundError
from sentinel_api.models import (
    Accused,
    Case,
    CaseStatement,
    Challan,
    Court,
    EmissionReading,
    Fir,
    IotDevice,
    Judge,
    PoliceOfficer,
    PoliceStation,
    Vehicle,
    Violation,
)


def normalize_plate(plate: Optional[str]) -> str:
    """Strip spaces and dashes, uppercase."""
    if not plate:
        return ""
    return plate.replace(" ", "").replace("-", "").upper()


def _get_or_404(db: Session, model, entity_id: int, resource: str):
    entity = db.get(model, entity_id)
    if entity is None:
        raise NotFoundError(resource, entity_id)
    return entity


def get_reading(db: Session, reading_id: int) -> EmissionReading:
    return _get_or_404(db, EmissionReading, reading_id, "Emission reading")


def get_device(db: Session, device_id: int) -> IotDevice:
    return _get_or_404(db, IotDevice, device_id, "IoT device")


def get_challan(db: Session, challan_id: int) -> Challan:
    return _get_or_404(db, Challan, challan_id, "Challan")


def get_fir(db: Session, fir_id: int) -> Fir:
    return _get_or_404(db, Fir, fir_id, "FIR")


def get_case(db: Session, case_id: int) -> Case:
    return _get_or_404(db, Case, case_id, "Case")


def get_station(db: Session, station_id: int) -> PoliceStation:
    return _get_or_404(db, PoliceStation, station_id, "Police station")


def get_court(db: Session, court_id: int) -> Court:
    return _get_or_404(db, Court, court_id, "Court")


def get_officer(db: Session, officer_id: int) -> PoliceOfficer:
    return _get_or_404(db, PoliceOfficer, officer_id, "Police officer")


def get_judge(db: Session, judge_id: int) -> Judge:
    return _get_or_404(db, Judge, judge_id, "Judge")


def get_accused(db: Session, accused_id: int) -> Accused:
    return _get_or_404(db, Accused, accused_id, "Accused")


def get_vehicle(db: Session, vehicle_id: int) -> Vehicle:
    return _get_or_404(db, Vehicle, vehicle_id, "Vehicle")


def get_violation(db: Session, violation_id: int) -> Violation:
    return _get_or_404(db, Violation, violation_id, "Violation")


def reading_has_challan(db: Session, reading_id: int) -> bool:
    """True if a challan already references the reading."""
    return (
        db.query(Challan.id).filter(Challan.emission_reading_id == reading_id).first()
        is not None
    )


def challan_has_fir(db: Session, challan_id: int) -> bool:
    """True if a FIR already references the challan."""
    return db.query(Fir.id).filter(Fir.challan_id == challan_id).first() is not None


def fir_has_case(db: Session, fir_id: int) -> bool:
    """True if a case already references the FIR."""
    return db.query(Case.id).filter(Case.fir_id == fir_id).first() is not None


def latest_device_reading(db: Session, device_id: int) -> Optional[EmissionReading]:
    return (
        db.query(EmissionReading)
        .filter(EmissionReading.device_id == device_id)
        .order_by(EmissionReading.captured_at.desc())
        .first()
    )


def find_accused_by_identity(db: Session, cnic: str, email: str) -> list[Accused]:
    """Accused rows with this CNIC and a case-insensitively equal email."""
    return (
        db.query(Accused)
        .filter(
            Accused.cnic == cnic,
            Accused.email.isnot(None),
            func.lower(Accused.email) == email.lower(),
        )
        .order_by(Accused.id.asc())
        .all()
    )


def find_vehicle_for_accused(db: Session, accused_id: int, vehicle_no: str) -> Optional[Vehicle]:
    """Vehicle matching the plate that the accused owns or was challaned in."""
    target = normalize_plate(vehicle_no)
    owned = db.query(Vehicle).filter(Vehicle.owner_id == accused_id).all()
    for vehicle in owned:
        if normalize_plate(vehicle.plate_number) == target:
            return vehicle

    challaned = (
        db.query(Vehicle)
        .join(Challan, Challan.vehicle_id == Vehicle.id)
        .filter(Challan.accused_id == accused_id)
        .all()
    )
    for vehicle in challaned:
        if normalize_plate(vehicle.plate_number) == target:
            return vehicle
    return None


def find_vehicle_owner_match(
    db: Session, vehicle_no: str, cnic: str, email: str
) -> Optional[tuple[Accused, Vehicle]]:
    """Resolve (accused, vehicle) for a public status request, or None."""
    for accused in find_accused_by_identity(db, cnic, email):
        vehicle = find_vehicle_for_accused(db, accused.id, vehicle_no)
        if vehicle is not None:
            return accused, vehicle
    return None


def challans_for_vehicle(db: Session, accused_id: int, vehicle_id: int) -> list[Challan]:
    return (
        db.query(Challan)
        .filter(Challan.accused_id == accused_id, Challan.vehicle_id == vehicle_id)
        .order_by(Challan.issued_at.desc())
        .all()
    )


def firs_for_challans(db: Session, challan_ids: list[int]) -> list[Fir]:
    if not challan_ids:
        return []
    return (
        db.query(Fir)
        .filter(Fir.challan_id.in_(challan_ids))
        .order_by(Fir.filed_at.desc())
        .all()
    )


def cases_for_firs(db: Session, fir_ids: list[int]) -> list[Case]:
    if not fir_ids:
        return []
    return db.query(Case).filter(Case.fir_id.in_(fir_ids)).all()


def statements_for_case(db: Session, case_id: int) -> list[CaseStatement]:
    return (
        db.query(CaseStatement)
        .filter(CaseStatement.case_id == case_id)
        .order_by(CaseStatement.statement_date.desc())
        .all()
    )
