"""Challan endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from sentinel_api import repository
from sentinel_api.auth.api_key import ROLE_POLICE_OFFICER, ROLE_STATION_AUTHORITY, require_role
from sentinel_api.chain.linker import ChainLinker
from sentinel_api.db.session import get_db
from sentinel_api.models import ApiKey

router = APIRouter(prefix="/v1/challans", tags=["challans"])


class ChallanCreate(BaseModel):
    """Challan filing request."""

    accused_id: int
    vehicle_id: int
    violation_id: int
    emission_reading_id: Optional[int] = None
    officer_id: Optional[int] = Field(None, description="Defaults to the officer bound to the API key")


class ChallanStatusUpdate(BaseModel):
    status: str = Field(..., description="Unpaid, Paid or Disputed")


class ChallanResponse(BaseModel):
    """Challan."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    officer_id: int
    accused_id: int
    vehicle_id: int
    violation_id: int
    emission_reading_id: Optional[int] = None
    issued_at: datetime
    due_at: datetime
    status: str
    signature_value: str
    is_cognizable: bool = False


def _to_response(db: Session, challan) -> ChallanResponse:
    response = ChallanResponse.model_validate(challan)
    response.is_cognizable = bool(repository.get_violation(db, challan.violation_id).is_cognizable)
    return response


@router.post("", response_model=ChallanResponse, status_code=status.HTTP_201_CREATED)
def file_challan(
    request_data: ChallanCreate,
    api_key: ApiKey = Depends(require_role(ROLE_POLICE_OFFICER)),
    db: Session = Depends(get_db),
):
    """File a challan, optionally on an emission reading."""
    officer_id = request_data.officer_id or api_key.officer_id
    if officer_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="officer_id is required for keys not bound to an officer.",
        )
    if api_key.officer_id is not None and officer_id != api_key.officer_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Officers may only file challans in their own name.",
        )

    challan = ChainLinker(db).file_challan(
        officer_id=officer_id,
        accused_id=request_data.accused_id,
        vehicle_id=request_data.vehicle_id,
        violation_id=request_data.violation_id,
        emission_reading_id=request_data.emission_reading_id,
    )
    return _to_response(db, challan)


@router.patch("/{challan_id}/status", response_model=ChallanResponse)
def update_challan_status(
    challan_id: int,
    request_data: ChallanStatusUpdate,
    api_key: ApiKey = Depends(require_role(ROLE_POLICE_OFFICER, ROLE_STATION_AUTHORITY)),
    db: Session = Depends(get_db),
):
    """Change a challan's payment status."""
    challan = ChainLinker(db).set_challan_status(challan_id, request_data.status)
    return _to_response(db, challan)
