"""Seed data for development and testing."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from sentinel_api.auth.api_key import (
    ROLE_COURT_AUTHORITY,
    ROLE_DEVICE,
    ROLE_JUDGE,
    ROLE_POLICE_OFFICER,
    ROLE_STATION_AUTHORITY,
    create_api_key,
)
from sentinel_api.models import (
    Accused,
    ApiKey,
    Court,
    IotDevice,
    Judge,
    PoliceOfficer,
    PoliceStation,
    Vehicle,
    Violation,
)


def seed_registry(db: Session) -> dict:
    """Seed demo stations, courts, people, vehicles, violations and a device."""
    station = db.query(PoliceStation).filter(PoliceStation.station_code == "LHR-01").first()
    if station:
        print(f"✓ Registry already seeded (station {station.station_code})")
        return {"station": station}

    station = PoliceStation(
        station_name="Gulberg Police Station",
        station_code="LHR-01",
        location="Lahore",
        district="Lahore",
        province="Punjab",
    )
    court = Court(
        court_name="District Court Lahore",
        court_type="District Court",
        location="Lahore",
        district="Lahore",
        province="Punjab",
    )
    db.add_all([station, court])
    db.flush()

    officer = PoliceOfficer(
        station_id=station.id,
        full_name="Inspector Ali Raza",
        badge_number="PB-1001",
        rank="Inspector",
        is_investigation_officer=True,
    )
    judge = Judge(court_id=court.id, full_name="Justice Sana Malik", rank="District Judge")
    accused = Accused(
        full_name="Usman Tariq",
        cnic="35202-1234567-1",
        email="usman.tariq@example.com",
        contact="+92-300-0000000",
        city="Lahore",
        province="Punjab",
    )
    db.add_all([officer, judge, accused])
    db.flush()

    vehicle = Vehicle(plate_number="LEA-1234", make="Honda", color="Black", registration_year=2019, owner_id=accused.id)
    noise = Violation(
        violation_type="Excessive Noise Emission",
        description="Sound level above the legal limit",
        penalty_amount=Decimal("2000.00"),
        section_of_law="PEPA 1997 s.11",
        is_cognizable=False,
    )
    modified_silencer = Violation(
        violation_type="Modified Silencer",
        description="Tampered exhaust producing excessive noise",
        penalty_amount=Decimal("5000.00"),
        section_of_law="MVO 1965 s.165",
        is_cognizable=True,
    )
    device = IotDevice(
        device_name="NS-DEVICE-001",
        firmware_version="1.4.2",
        is_registered=True,
        is_calibrated=True,
        calibration_date=datetime.utcnow(),
        calibration_certificate_no="CAL-2025-001",
        paired_officer_id=officer.id,
    )
    db.add_all([vehicle, noise, modified_silencer, device])
    db.commit()

    print(f"✓ Created station {station.station_code}, court {court.court_name}, device {device.device_name}")
    return {
        "station": station,
        "court": court,
        "officer": officer,
        "judge": judge,
        "accused": accused,
        "vehicle": vehicle,
        "device": device,
    }


def seed_api_keys(db: Session, registry: dict):
    """Seed one API key per authority role. Raw keys are printed once."""
    if db.query(ApiKey).count() > 0:
        print("✓ API keys already exist")
        return
    if "court" not in registry:
        print("✗ Registry incomplete; skipping API keys")
        return

    keys = [
        (ROLE_DEVICE, "Demo device", {"device_id": registry["device"].id}),
        (ROLE_POLICE_OFFICER, "Demo officer", {"officer_id": registry["officer"].id}),
        (ROLE_STATION_AUTHORITY, "Demo station authority", {"station_id": registry["station"].id}),
        (ROLE_COURT_AUTHORITY, "Demo court authority", {"court_id": registry["court"].id}),
        (ROLE_JUDGE, "Demo judge", {"judge_id": registry["judge"].id, "court_id": registry["court"].id}),
    ]
    for role, label, subject in keys:
        _, raw_key = create_api_key(db, role, label=label, **subject)
        print(f"✓ {label} ({role}) API key: {raw_key}")
    db.commit()


def seed_all(db: Session):
    """Seed all demo data."""
    registry = seed_registry(db)
    seed_api_keys(db, registry)
