"""Pytest configuration and fixtures."""

import os

# Configure the app for tests before anything imports settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SIGNING_KEY_PROVIDER"] = "local_hmac"
os.environ["SIGNING_SECRET"] = "test-signing-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from sentinel_api.chain.linker import ChainLinker
from sentinel_api.db.base import Base
from sentinel_api.evidence.service import EmissionReadingService
from sentinel_api.integrity.engine import SignatureEngine
from sentinel_api.integrity.signer import HmacSigner
from sentinel_api.models import (
    Accused,
    Court,
    IotDevice,
    Judge,
    PoliceOfficer,
    PoliceStation,
    Vehicle,
    Violation,
)
from sentinel_api.settings import Settings

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


class FrozenClock:
    """Controllable clock for services."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)

    def set(self, when: datetime):
        self.current = when


@pytest.fixture(scope="function")
def db():
    """
    Create a test database session.

    For integration tests, use TEST_DATABASE_URL environment variable
    to point to a real PostgreSQL instance.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine shared by several threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'chain.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 6, 1, 12, 0, 0))


@pytest.fixture
def signature_engine() -> SignatureEngine:
    return SignatureEngine(HmacSigner(secret="test-signing-secret", key_id="test-hmac-key"))


@pytest.fixture
def linker(db: Session, settings, clock, signature_engine) -> ChainLinker:
    return ChainLinker(db, settings=settings, clock=clock, engine=signature_engine)


def seed_registry(session: Session) -> SimpleNamespace:
    """Two stations, courts with judges, an owner with a vehicle, violations and a device."""
    s1 = PoliceStation(station_name="Station One", station_code="S1", location="Lahore")
    s2 = PoliceStation(station_name="Station Two", station_code="LHR-02", location="Lahore")
    court = Court(court_name="District Court Lahore", court_type="District Court", location="Lahore")
    other_court = Court(court_name="High Court Karachi", court_type="High Court", location="Karachi")
    session.add_all([s1, s2, court, other_court])
    session.flush()

    officer = PoliceOfficer(station_id=s1.id, full_name="Officer One", badge_number="B-1")
    other_officer = PoliceOfficer(station_id=s2.id, full_name="Officer Two", badge_number="B-2")
    judge = Judge(court_id=court.id, full_name="Justice Amina Qureshi")
    other_judge = Judge(court_id=other_court.id, full_name="Justice Karim Shah")
    unassigned_judge = Judge(court_id=None, full_name="Justice Unassigned")
    bench_judge = Judge(court_id=court.id, full_name="Justice Sana Malik")
    accused = Accused(
        full_name="Bilal Ahmed",
        cnic="35202-1111111-1",
        email="Bilal.Ahmed@example.com",
        city="Lahore",
    )
    session.add_all([officer, other_officer, judge, other_judge, unassigned_judge, bench_judge, accused])
    session.flush()

    vehicle = Vehicle(plate_number="LEB 123", make="Suzuki", color="White", owner_id=accused.id)
    cognizable = Violation(
        violation_type="Modified Silencer",
        penalty_amount=Decimal("5000.00"),
        is_cognizable=True,
    )
    minor = Violation(
        violation_type="Excessive Horn",
        penalty_amount=Decimal("1000.00"),
        is_cognizable=False,
    )
    device = IotDevice(device_name="NS-TEST-1", is_registered=True, is_calibrated=True)
    uncalibrated = IotDevice(device_name="NS-TEST-2", is_registered=True, is_calibrated=False)
    unregistered = IotDevice(device_name="NS-TEST-3", is_registered=False, is_calibrated=True)
    session.add_all([vehicle, cognizable, minor, device, uncalibrated, unregistered])
    session.commit()

    return SimpleNamespace(
        station=s1,
        other_station=s2,
        court=court,
        other_court=other_court,
        officer=officer,
        other_officer=other_officer,
        judge=judge,
        other_judge=other_judge,
        unassigned_judge=unassigned_judge,
        bench_judge=bench_judge,
        accused=accused,
        vehicle=vehicle,
        cognizable=cognizable,
        minor=minor,
        device=device,
        uncalibrated=uncalibrated,
        unregistered=unregistered,
    )


@pytest.fixture
def registry(db: Session) -> SimpleNamespace:
    return seed_registry(db)


@pytest.fixture
def make_challan(linker: ChainLinker, registry):
    """Factory filing a challan on the registry's owner and vehicle."""

    def factory(violation=None, emission_reading_id=None):
        return linker.file_challan(
            officer_id=registry.officer.id,
            accused_id=registry.accused.id,
            vehicle_id=registry.vehicle.id,
            violation_id=(violation or registry.cognizable).id,
            emission_reading_id=emission_reading_id,
        )

    return factory


@pytest.fixture
def reading_service(db: Session, settings, clock, signature_engine) -> EmissionReadingService:
    return EmissionReadingService(db, settings=settings, clock=clock, engine=signature_engine)


@pytest.fixture
def reading(reading_service: EmissionReadingService, registry, clock):
    """A signed reading above the legal limit, captured a minute ago."""
    return reading_service.ingest(
        device_id=registry.device.id,
        sound_level_dba=Decimal("92.50"),
        captured_at=clock() - timedelta(minutes=1),
        co2=Decimal("412.5"),
        ml_classification="modified_silencer",
    )


@pytest.fixture
def registry_seeder():
    """seed_registry for tests that seed their own database."""
    return seed_registry
