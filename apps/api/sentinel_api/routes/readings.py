"""Emission reading endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sentinel_api import repository
from sentinel_api.auth.api_key import (
    ROLE_COURT_AUTHORITY,
    ROLE_DEVICE,
    ROLE_JUDGE,
    ROLE_POLICE_OFFICER,
    ROLE_STATION_AUTHORITY,
    require_role,
)
from sentinel_api.db.session import get_db
from sentinel_api.evidence.service import EmissionReadingService
from sentinel_api.models import ApiKey

router = APIRouter(prefix="/v1/readings", tags=["readings"])

AUTHORITY_ROLES = (ROLE_POLICE_OFFICER, ROLE_STATION_AUTHORITY, ROLE_COURT_AUTHORITY, ROLE_JUDGE)

# Largest values the Numeric(6, 2) and Numeric(10, 2) columns hold
MAX_SOUND_LEVEL = Decimal("9999.99")
MAX_GAS_LEVEL = Decimal("99999999.99")


class ReadingCreate(BaseModel):
    """Emission reading submitted by a device."""

    device_id: int
    sound_level_dba: Decimal = Field(..., ge=0, le=MAX_SOUND_LEVEL, description="Sound level in dBA")
    captured_at: datetime = Field(..., description="Capture timestamp (UTC if naive)")
    co: Optional[Decimal] = Field(None, ge=0, le=MAX_GAS_LEVEL)
    co2: Optional[Decimal] = Field(None, ge=0, le=MAX_GAS_LEVEL)
    hc: Optional[Decimal] = Field(None, ge=0, le=MAX_GAS_LEVEL)
    nox: Optional[Decimal] = Field(None, ge=0, le=MAX_GAS_LEVEL)
    ml_classification: Optional[str] = Field(None, max_length=100)


class ReadingResponse(BaseModel):
    """Stored emission reading."""

    id: int
    device_id: int
    sound_level_dba: Decimal
    co: Optional[Decimal] = None
    co2: Optional[Decimal] = None
    hc: Optional[Decimal] = None
    nox: Optional[Decimal] = None
    captured_at: datetime
    ml_classification: Optional[str] = None
    signature_value: str
    signature_alg: str
    signature_key_id: Optional[str] = None
    is_violation: bool
    legal_sound_limit_dba: float


class VerificationResponse(BaseModel):
    """Integrity verification result for a stored reading."""

    reading_id: int
    is_authentic: bool
    admissible: bool
    stored_signature: str
    computed_signature: Optional[str] = None
    signature_alg: str
    key_id: Optional[str] = None
    verified_at: datetime
    flag_id: Optional[int] = None
    is_violation: bool
    has_challan: bool


def _to_response(service: EmissionReadingService, reading) -> ReadingResponse:
    return ReadingResponse(
        id=reading.id,
        device_id=reading.device_id,
        sound_level_dba=reading.sound_level_dba,
        co=reading.co,
        co2=reading.co2,
        hc=reading.hc,
        nox=reading.nox,
        captured_at=reading.captured_at,
        ml_classification=reading.ml_classification,
        signature_value=reading.signature_value,
        signature_alg=reading.signature_alg,
        signature_key_id=reading.signature_key_id,
        is_violation=service.is_violation(reading.sound_level_dba),
        legal_sound_limit_dba=service.settings.legal_sound_limit_dba,
    )


@router.post("", response_model=ReadingResponse, status_code=status.HTTP_201_CREATED)
def create_reading(
    request_data: ReadingCreate,
    api_key: ApiKey = Depends(require_role(ROLE_DEVICE)),
    db: Session = Depends(get_db),
):
    """Sign and store a device reading."""
    if api_key.device_id is not None and api_key.device_id != request_data.device_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key is not bound to this device.",
        )

    service = EmissionReadingService(db)
    reading = service.ingest(
        device_id=request_data.device_id,
        sound_level_dba=request_data.sound_level_dba,
        captured_at=request_data.captured_at,
        co=request_data.co,
        co2=request_data.co2,
        hc=request_data.hc,
        nox=request_data.nox,
        ml_classification=request_data.ml_classification,
    )
    return _to_response(service, reading)


@router.get("/{reading_id}", response_model=ReadingResponse)
def get_reading(
    reading_id: int,
    api_key: ApiKey = Depends(require_role(*AUTHORITY_ROLES)),
    db: Session = Depends(get_db),
):
    """Get a stored reading."""
    service = EmissionReadingService(db)
    return _to_response(service, repository.get_reading(db, reading_id))


@router.get("/{reading_id}/verification", response_model=VerificationResponse)
def verify_reading(
    reading_id: int,
    api_key: ApiKey = Depends(require_role(*AUTHORITY_ROLES)),
    db: Session = Depends(get_db),
):
    """Re-verify a reading's signature; mismatches are flagged, not raised."""
    result = EmissionReadingService(db).verify_integrity(reading_id)
    return VerificationResponse(
        reading_id=result["reading"].id,
        is_authentic=result["is_authentic"],
        admissible=result["is_authentic"],
        stored_signature=result["stored_signature"],
        computed_signature=result["computed_signature"],
        signature_alg=result["signature_alg"],
        key_id=result["key_id"],
        verified_at=result["verified_at"],
        flag_id=result["flag_id"],
        is_violation=result["is_violation"],
        has_challan=result["has_challan"],
    )
