"""Database models - import all models here for Alembic discovery."""

from sentinel_api.models.api_key import ApiKey
from sentinel_api.models.chain import Case, CaseStatement, Challan, Fir
from sentinel_api.models.evidence import EmissionReading, IntegrityFlag
from sentinel_api.models.otp import PublicStatusOtp
from sentinel_api.models.registry import (
    Accused,
    Court,
    IotDevice,
    Judge,
    PoliceOfficer,
    PoliceStation,
    Vehicle,
    Violation,
)
from sentinel_api.models.sequence import ScopeSequence

__all__ = [
    "PoliceStation",
    "Court",
    "PoliceOfficer",
    "Judge",
    "Accused",
    "Vehicle",
    "Violation",
    "IotDevice",
    "EmissionReading",
    "IntegrityFlag",
    "Challan",
    "Fir",
    "Case",
    "CaseStatement",
    "ScopeSequence",
    "PublicStatusOtp",
    "ApiKey",
]
