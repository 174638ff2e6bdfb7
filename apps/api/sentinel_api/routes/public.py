"""Public, OTP-gated case status endpoints. Unauthenticated and rate limited."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from sentinel_api.db.session import get_db
from sentinel_api.public.otp import OtpGateway

router = APIRouter(prefix="/v1/public/status", tags=["public"])


class OtpRequest(BaseModel):
    vehicle_no: str = Field(..., min_length=1, max_length=50)
    cnic: str = Field(..., min_length=5, max_length=20)
    email: EmailStr


class OtpRequestResponse(BaseModel):
    message: str
    masked_email: str
    expires_at: datetime


class OtpVerify(BaseModel):
    vehicle_no: str = Field(..., min_length=1, max_length=50)
    cnic: str = Field(..., min_length=5, max_length=20)
    code: str = Field(..., min_length=1, max_length=10)


class OtpVerifyResponse(BaseModel):
    access_token: str
    expires_at: datetime
    message: str


@router.post("/otp", response_model=OtpRequestResponse)
def request_status_otp(request_data: OtpRequest, db: Session = Depends(get_db)):
    """Send a one-time code to the email registered for the vehicle and CNIC."""
    return OtpGateway(db).request_otp(request_data.vehicle_no, request_data.cnic, request_data.email)


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_status_otp(request_data: OtpVerify, db: Session = Depends(get_db)):
    """Exchange a one-time code for a time-boxed access token."""
    return OtpGateway(db).verify_otp(request_data.vehicle_no, request_data.cnic, request_data.code)


@router.get("")
def get_case_status(
    x_status_token: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """Case status for the vehicle the access token was issued on."""
    return OtpGateway(db).get_case_status(x_status_token)
