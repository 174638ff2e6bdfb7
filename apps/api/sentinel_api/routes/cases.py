"""Case endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from sentinel_api import repository
from sentinel_api.auth.api_key import ROLE_COURT_AUTHORITY, ROLE_JUDGE, require_role
from sentinel_api.chain.linker import ChainLinker
from sentinel_api.chain.proceedings import ProceedingsService
from sentinel_api.db.session import get_db
from sentinel_api.models import ApiKey

router = APIRouter(prefix="/v1/cases", tags=["cases"])


class CaseCreate(BaseModel):
    """Case issuance request."""

    fir_id: int
    judge_id: int
    case_type: Optional[str] = Field(None, max_length=100)
    hearing_date: Optional[datetime] = None


class CaseUpdate(BaseModel):
    status: Optional[str] = Field(None, description="Pending, In Progress or Adjourned")
    hearing_date: Optional[datetime] = None


class JudgeAssignment(BaseModel):
    judge_id: int


class StatementCreate(BaseModel):
    statement_text: str = Field(..., min_length=1)
    statement_by: Optional[str] = Field(None, max_length=255)


class VerdictCreate(BaseModel):
    verdict: str = Field(..., min_length=1)


class CaseResponse(BaseModel):
    """Case."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    case_no: str
    fir_id: int
    court_id: int
    year: int
    sequence: int
    judge_id: int
    case_type: str
    status: str
    hearing_date: Optional[datetime] = None
    filed_at: datetime
    verdict: Optional[str] = None
    verdict_at: Optional[datetime] = None


class StatementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    case_id: int
    statement_by: str
    statement_text: str
    statement_date: datetime


def _judge_id(api_key: ApiKey) -> int:
    if api_key.judge_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key is not bound to a judge.",
        )
    return api_key.judge_id


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def issue_case(
    request_data: CaseCreate,
    api_key: ApiKey = Depends(require_role(ROLE_COURT_AUTHORITY)),
    db: Session = Depends(get_db),
):
    """Open a case from a FIR."""
    return ChainLinker(db).issue_case(
        fir_id=request_data.fir_id,
        judge_id=request_data.judge_id,
        case_type=request_data.case_type,
        hearing_date=request_data.hearing_date,
        court_id=api_key.court_id,
    )


@router.patch("/{case_id}", response_model=CaseResponse)
def update_case(
    case_id: int,
    request_data: CaseUpdate,
    api_key: ApiKey = Depends(require_role(ROLE_COURT_AUTHORITY, ROLE_JUDGE)),
    db: Session = Depends(get_db),
):
    """Reschedule or move an open case."""
    case = repository.get_case(db, case_id)
    if api_key.court_id is not None and case.court_id != api_key.court_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Case belongs to another court.")
    if api_key.role == ROLE_JUDGE and case.judge_id != _judge_id(api_key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Judge is not assigned to this case.")
    return ProceedingsService(db).update_case(
        case_id, status=request_data.status, hearing_date=request_data.hearing_date
    )


@router.patch("/{case_id}/judge", response_model=CaseResponse)
def assign_judge(
    case_id: int,
    request_data: JudgeAssignment,
    api_key: ApiKey = Depends(require_role(ROLE_COURT_AUTHORITY)),
    db: Session = Depends(get_db),
):
    """Reassign an open case to another judge of its court."""
    return ProceedingsService(db).assign_judge(
        case_id, judge_id=request_data.judge_id, court_id=api_key.court_id
    )


@router.post("/{case_id}/statements", response_model=StatementResponse, status_code=status.HTTP_201_CREATED)
def add_statement(
    case_id: int,
    request_data: StatementCreate,
    api_key: ApiKey = Depends(require_role(ROLE_JUDGE)),
    db: Session = Depends(get_db),
):
    """Record a statement on a case."""
    return ProceedingsService(db).add_statement(
        case_id,
        judge_id=_judge_id(api_key),
        statement_text=request_data.statement_text,
        statement_by=request_data.statement_by,
    )


@router.post("/{case_id}/verdict", response_model=CaseResponse)
def record_verdict(
    case_id: int,
    request_data: VerdictCreate,
    api_key: ApiKey = Depends(require_role(ROLE_JUDGE)),
    db: Session = Depends(get_db),
):
    """Record the case verdict."""
    return ProceedingsService(db).record_verdict(case_id, judge_id=_judge_id(api_key), verdict=request_data.verdict)
