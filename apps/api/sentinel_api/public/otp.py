"""OTP gateway for the public case status channel.

Each (vehicle, cnic) pair moves through an explicit state machine:

    REQUESTED --verify--> VERIFIED --issue_token--> TOKEN_ISSUED --token_expiry--> EXPIRED
    REQUESTED --expire--> EXPIRED

Codes and tokens are stored only as keyed digests. Expiry is passive: a
credential is valid while now <= its expiry timestamp.
"""

import logging
import secrets
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from sqlalchemy import update

from sentinel_api import repository
from sentinel_api.errors import (
    OTP_ALREADY_USED,
    ConflictError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from sentinel_api.models import PublicStatusOtp
from sentinel_api.notifications.email import enqueue_status_otp_email
from sentinel_api.public.status import build_case_status
from sentinel_api.security.digest import compute_digest, digests_match
from sentinel_api.services.base import BaseService
from sentinel_api.utils.metrics import otp_events

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = (
    "No records found matching the provided vehicle number, CNIC and email. "
    "Please check the details registered with your records."
)


class OtpState(str, Enum):
    REQUESTED = "requested"
    VERIFIED = "verified"
    TOKEN_ISSUED = "token_issued"
    EXPIRED = "expired"


TRANSITIONS = {
    (OtpState.REQUESTED, "verify"): OtpState.VERIFIED,
    (OtpState.REQUESTED, "expire"): OtpState.EXPIRED,
    (OtpState.VERIFIED, "issue_token"): OtpState.TOKEN_ISSUED,
    (OtpState.TOKEN_ISSUED, "token_expiry"): OtpState.EXPIRED,
}


def transition(state: OtpState, event: str) -> OtpState:
    """Apply an event, raising ValueError for a transition the machine forbids."""
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise ValueError(f"Invalid OTP transition: {state.value} --{event}-->")


def otp_state(record: PublicStatusOtp, now: datetime, max_attempts: int) -> OtpState:
    """Derive the current state of an OTP record at time now."""
    if record.is_verified:
        if not record.access_token_digest:
            return OtpState.VERIFIED
        if record.access_token_expires_at and now <= record.access_token_expires_at:
            return OtpState.TOKEN_ISSUED
        return OtpState.EXPIRED
    if now > record.expires_at or record.failed_attempts >= max_attempts:
        return OtpState.EXPIRED
    return OtpState.REQUESTED


def mask_email(email: str) -> str:
    """a***b@domain, or ab***@domain for very short local parts."""
    parts = email.split("@")
    if len(parts) != 2:
        return email
    local, domain = parts
    if len(local) <= 2:
        return f"{local}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


def _code_purpose(vehicle_no: str, cnic: str) -> str:
    return f"status_otp:{vehicle_no}:{cnic}"


def _token_digest(token: str) -> str:
    return compute_digest(token, "status_token")


class OtpGateway(BaseService):
    """Request, verify and redeem OTPs for public case status."""

    def __init__(self, db, settings=None, clock=None, dispatcher: Optional[Callable] = None):
        """Initialize OTP gateway."""
        super().__init__(db, settings=settings, clock=clock)
        self.dispatcher = dispatcher or enqueue_status_otp_email

    def generate_code(self) -> str:
        length = self.settings.otp_length
        return f"{secrets.randbelow(10 ** length):0{length}d}"

    def request_otp(self, vehicle_no: str, cnic: str, email: str) -> dict:
        """Issue an OTP to the registered email of a matching owner."""
        if not vehicle_no or not cnic or not email:
            raise ValidationError("Vehicle number, CNIC and email are required")

        vehicle_key = repository.normalize_plate(vehicle_no)
        cnic = cnic.strip()
        email = email.strip()

        if repository.find_vehicle_owner_match(self.db, vehicle_key, cnic, email) is None:
            otp_events.labels(event="request_rejected").inc()
            logger.info("Status OTP request did not match any owner", extra={"vehicle_no": vehicle_key})
            raise ValidationError(NO_MATCH_MESSAGE)

        # Only one live challenge per pair
        self.db.query(PublicStatusOtp).filter(
            PublicStatusOtp.vehicle_no == vehicle_key,
            PublicStatusOtp.cnic == cnic,
            PublicStatusOtp.is_verified.is_(False),
        ).delete(synchronize_session=False)

        now = self.now()
        code = self.generate_code()
        record = PublicStatusOtp(
            vehicle_no=vehicle_key,
            cnic=cnic,
            email=email,
            code_digest=compute_digest(code, _code_purpose(vehicle_key, cnic)),
            created_at=now,
            expires_at=now + timedelta(minutes=self.settings.otp_ttl_minutes),
            is_verified=False,
            failed_attempts=0,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        otp_events.labels(event="requested").inc()

        # Fire-and-forget: the challenge stands even if the email cannot be queued
        try:
            self.dispatcher(
                to_email=email,
                code=code,
                vehicle_no=vehicle_no,
                expires_in_minutes=self.settings.otp_ttl_minutes,
            )
        except Exception:
            otp_events.labels(event="dispatch_failed").inc()
            logger.warning(
                f"Failed to dispatch status OTP email for record {record.id}",
                exc_info=True,
                extra={"otp_id": record.id},
            )

        return {
            "message": (
                f"A {self.settings.otp_length}-digit verification code has been sent to "
                f"{mask_email(email)}. It expires in {self.settings.otp_ttl_minutes} minutes."
            ),
            "masked_email": mask_email(email),
            "expires_at": record.expires_at,
        }

    def _latest_record(self, vehicle_key: str, cnic: str) -> Optional[PublicStatusOtp]:
        return (
            self.db.query(PublicStatusOtp)
            .filter(PublicStatusOtp.vehicle_no == vehicle_key, PublicStatusOtp.cnic == cnic)
            .order_by(PublicStatusOtp.created_at.desc(), PublicStatusOtp.id.desc())
            .first()
        )

    def verify_otp(self, vehicle_no: str, cnic: str, code: str) -> dict:
        """Redeem a code for an access token. Single use."""
        vehicle_key = repository.normalize_plate(vehicle_no)
        cnic = (cnic or "").strip()
        now = self.now()
        max_attempts = self.settings.otp_max_attempts

        record = self._latest_record(vehicle_key, cnic)
        if record is None:
            otp_events.labels(event="verify_not_found").inc()
            raise NotFoundError("Verification request", code="OTP_NOT_FOUND")

        state = otp_state(record, now, max_attempts)
        if state in (OtpState.VERIFIED, OtpState.TOKEN_ISSUED) or record.is_verified:
            otp_events.labels(event="verify_reused").inc()
            raise ConflictError("This verification code has already been used", OTP_ALREADY_USED)
        if state == OtpState.EXPIRED:
            otp_events.labels(event="verify_expired").inc()
            raise ExpiredError("Verification code has expired. Please request a new one.")

        computed = compute_digest((code or "").strip(), _code_purpose(vehicle_key, cnic))
        if not digests_match(record.code_digest, computed):
            self.db.execute(
                update(PublicStatusOtp)
                .where(PublicStatusOtp.id == record.id)
                .values(failed_attempts=PublicStatusOtp.failed_attempts + 1)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            self.db.refresh(record)
            otp_events.labels(event="verify_mismatch").inc()
            remaining = max(0, max_attempts - record.failed_attempts)
            raise ValidationError(
                f"Invalid verification code. {remaining} attempt(s) remaining."
            )

        transition(transition(state, "verify"), "issue_token")
        token = secrets.token_urlsafe(32)
        token_expires_at = now + timedelta(hours=self.settings.access_token_ttl_hours)

        # Conditional update: exactly one concurrent verifier wins, and only
        # while the row is still unexpired with attempts left
        result = self.db.execute(
            update(PublicStatusOtp)
            .where(
                PublicStatusOtp.id == record.id,
                PublicStatusOtp.is_verified.is_(False),
                PublicStatusOtp.failed_attempts < max_attempts,
                PublicStatusOtp.expires_at >= now,
            )
            .values(
                is_verified=True,
                verified_at=now,
                access_token_digest=_token_digest(token),
                access_token_expires_at=token_expires_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(record)
            if record.is_verified:
                otp_events.labels(event="verify_reused").inc()
                raise ConflictError("This verification code has already been used", OTP_ALREADY_USED)
            otp_events.labels(event="verify_expired").inc()
            raise ExpiredError("Verification code has expired. Please request a new one.")
        self.db.commit()

        otp_events.labels(event="verified").inc()
        logger.info("Status OTP verified, access token issued", extra={"otp_id": record.id})
        return {
            "access_token": token,
            "expires_at": token_expires_at,
            "message": "Verification successful. Use the access token to view case status.",
        }

    def get_case_status(self, access_token: str) -> dict:
        """Read-only case status projection for a valid access token."""
        if not access_token:
            raise NotFoundError("Access token", code="TOKEN_NOT_FOUND")

        record = (
            self.db.query(PublicStatusOtp)
            .filter(
                PublicStatusOtp.access_token_digest == _token_digest(access_token),
                PublicStatusOtp.is_verified.is_(True),
            )
            .first()
        )
        if record is None:
            raise NotFoundError("Access token", code="TOKEN_NOT_FOUND")

        now = self.now()
        if otp_state(record, now, self.settings.otp_max_attempts) == OtpState.EXPIRED:
            otp_events.labels(event="token_expired").inc()
            raise ExpiredError("Access token has expired. Please verify your identity again.")

        return build_case_status(self.db, record, now)
