"""FIR endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from sentinel_api import repository
from sentinel_api.auth.api_key import ROLE_STATION_AUTHORITY, require_role
from sentinel_api.chain.linker import ChainLinker
from sentinel_api.chain.proceedings import ProceedingsService
from sentinel_api.db.session import get_db
from sentinel_api.models import ApiKey

router = APIRouter(prefix="/v1/firs", tags=["firs"])


class FirCreate(BaseModel):
    """FIR issuance request."""

    challan_id: int
    informant_id: int = Field(..., description="Officer filing the FIR; must be posted at the station")
    station_id: Optional[int] = Field(None, description="Defaults to the station bound to the API key")
    description: Optional[str] = None


class InvestigationUpdate(BaseModel):
    investigation_report: Optional[str] = None
    status: Optional[str] = None


class FirResponse(BaseModel):
    """FIR."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    fir_no: str
    station_id: int
    year: int
    sequence: int
    challan_id: int
    informant_id: int
    filed_at: datetime
    status: str
    description: Optional[str] = None
    investigation_report: Optional[str] = None


def _authorize_station(api_key: ApiKey, station_id: Optional[int]) -> int:
    station_id = station_id or api_key.station_id
    if station_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="station_id is required for keys not bound to a station.",
        )
    if api_key.station_id is not None and station_id != api_key.station_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Station authorities may only act for their own station.",
        )
    return station_id


@router.post("", response_model=FirResponse, status_code=status.HTTP_201_CREATED)
def issue_fir(
    request_data: FirCreate,
    api_key: ApiKey = Depends(require_role(ROLE_STATION_AUTHORITY)),
    db: Session = Depends(get_db),
):
    """Issue a FIR for a cognizable challan."""
    station_id = _authorize_station(api_key, request_data.station_id)
    return ChainLinker(db).issue_fir(
        challan_id=request_data.challan_id,
        station_id=station_id,
        informant_id=request_data.informant_id,
        description=request_data.description,
    )


@router.patch("/{fir_id}/investigation", response_model=FirResponse)
def append_investigation(
    fir_id: int,
    request_data: InvestigationUpdate,
    api_key: ApiKey = Depends(require_role(ROLE_STATION_AUTHORITY)),
    db: Session = Depends(get_db),
):
    """Append to the investigation report and optionally move the FIR status."""
    fir = repository.get_fir(db, fir_id)
    _authorize_station(api_key, fir.station_id)
    return ProceedingsService(db).append_investigation(
        fir_id,
        investigation_report=request_data.investigation_report,
        status=request_data.status,
    )
