"""Read-only case status projection for a verified citizen."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from sentinel_api import repository
from sentinel_api.errors import NotFoundError
from sentinel_api.models import PoliceStation, PublicStatusOtp

ACTIVE_CASE_STATUSES = ("pending", "in progress")


def _station_name(db: Session, station_id) -> str:
    if station_id is None:
        return "N/A"
    station = db.get(PoliceStation, station_id)
    return station.station_name if station else "N/A"


def build_case_status(db: Session, record: PublicStatusOtp, now: datetime) -> dict:
    """Project challans, FIRs and cases for the vehicle the OTP was issued on."""
    match = repository.find_vehicle_owner_match(db, record.vehicle_no, record.cnic, record.email)
    if match is None:
        raise NotFoundError("Records for this verification")
    accused, vehicle = match

    challans = repository.challans_for_vehicle(db, accused.id, vehicle.id)
    firs = repository.firs_for_challans(db, [c.id for c in challans])
    cases = repository.cases_for_firs(db, [f.id for f in firs])
    fir_by_id = {f.id: f for f in firs}
    firs_with_case = {c.fir_id for c in cases}
    challans_with_fir = {f.challan_id for f in firs}

    challan_items = []
    total_penalty = Decimal("0")
    unpaid_penalty = Decimal("0")
    for challan in challans:
        violation = repository.get_violation(db, challan.violation_id)
        officer = repository.get_officer(db, challan.officer_id)
        penalty = violation.penalty_amount or Decimal("0")
        unpaid = challan.status.lower() == "unpaid"
        total_penalty += penalty
        if unpaid:
            unpaid_penalty += penalty
        challan_items.append(
            {
                "challan_id": challan.id,
                "violation_type": violation.violation_type,
                "penalty_amount": penalty,
                "status": challan.status,
                "issued_at": challan.issued_at,
                "due_at": challan.due_at,
                "station_name": _station_name(db, officer.station_id),
                "is_cognizable": bool(violation.is_cognizable),
                "has_fir": challan.id in challans_with_fir,
                "is_overdue": unpaid and challan.due_at < now,
            }
        )

    fir_items = [
        {
            "fir_id": fir.id,
            "fir_no": fir.fir_no,
            "filed_at": fir.filed_at,
            "status": fir.status,
            "station_name": _station_name(db, fir.station_id),
            "challan_id": fir.challan_id,
            "has_case": fir.id in firs_with_case,
        }
        for fir in firs
    ]

    case_items = []
    for case in cases:
        judge = repository.get_judge(db, case.judge_id)
        court = repository.get_court(db, case.court_id)
        case_items.append(
            {
                "case_id": case.id,
                "case_no": case.case_no,
                "case_type": case.case_type,
                "status": case.status,
                "hearing_date": case.hearing_date,
                "verdict": case.verdict,
                "court_name": court.court_name,
                "judge_name": judge.full_name,
                "fir_no": fir_by_id[case.fir_id].fir_no,
                "statements": [
                    {
                        "statement_id": s.id,
                        "statement_by": s.statement_by,
                        "statement_text": s.statement_text,
                        "statement_date": s.statement_date,
                    }
                    for s in repository.statements_for_case(db, case.id)
                ],
            }
        )
    case_items.sort(key=lambda c: c["hearing_date"] or datetime.min, reverse=True)

    return {
        "accused": {
            "name": accused.full_name,
            "cnic": accused.cnic,
            "contact": accused.contact,
            "address": accused.address,
            "city": accused.city,
            "province": accused.province,
        },
        "vehicle": {
            "plate_number": vehicle.plate_number,
            "make": vehicle.make,
            "color": vehicle.color,
            "registration_year": vehicle.registration_year,
        },
        "summary": {
            "total_challans": len(challans),
            "unpaid_challans": sum(1 for c in challans if c.status.lower() == "unpaid"),
            "total_firs": len(firs),
            "active_cases": sum(1 for c in cases if c.status.lower() in ACTIVE_CASE_STATUSES),
            "total_penalty_amount": total_penalty,
            "unpaid_penalty_amount": unpaid_penalty,
        },
        "challans": challan_items,
        "firs": fir_items,
        "cases": case_items,
        "access_token_expires_at": record.access_token_expires_at,
    }
