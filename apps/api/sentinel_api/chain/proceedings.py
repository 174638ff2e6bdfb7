"""Post-issuance proceedings: FIR investigation, case statements and verdicts."""

import logging
from typing import Optional

from sqlalchemy import update

from sentinel_api import repository
from sentinel_api.errors import (
    VERDICT_ALREADY_RECORDED,
    AccessDeniedError,
    ConflictError,
    ValidationError,
)
from sentinel_api.integrity.canonical import normalize_timestamp
from sentinel_api.models import Case, CaseStatement, Fir
from sentinel_api.services.base import BaseService
from sentinel_api.utils.metrics import chain_conflicts

logger = logging.getLogger(__name__)

FIR_STATUSES = ("Filed", "Under Investigation", "Investigation Complete", "Forwarded to Court", "Closed")
OPEN_CASE_STATUSES = ("Pending", "In Progress", "Adjourned")
TERMINAL_CASE_STATUSES = ("Convicted", "Acquitted", "Dismissed", "Closed")


def derive_verdict_status(verdict: str) -> str:
    """Map verdict text to a terminal case status.

    Acquittal phrases are matched first so "not guilty" is not read as "guilty".
    """
    text = verdict.lower()
    if "acquitted" in text or "not guilty" in text:
        return "Acquitted"
    if "convicted" in text or "guilty" in text:
        return "Convicted"
    if "dismissed" in text:
        return "Dismissed"
    return "Closed"


class ProceedingsService(BaseService):
    """Mutations on issued FIRs and cases. Numbers and links are never touched."""

    def append_investigation(
        self,
        fir_id: int,
        investigation_report: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Fir:
        """Append to a FIR's investigation report and optionally move its status."""
        if not investigation_report and not status:
            raise ValidationError("Provide an investigation report or a status")
        if status is not None and status not in FIR_STATUSES:
            raise ValidationError(
                f"Invalid FIR status '{status}'. Allowed: {', '.join(FIR_STATUSES)}"
            )

        fir = repository.get_fir(self.db, fir_id)
        if investigation_report:
            entry = f"[{self.now().strftime('%Y-%m-%d %H:%M')}] {investigation_report.strip()}"
            if fir.investigation_report:
                fir.investigation_report = f"{fir.investigation_report}\n\n{entry}"
            else:
                fir.investigation_report = entry
        if status is not None:
            fir.status = status

        self.db.commit()
        self.db.refresh(fir)
        logger.info(f"FIR {fir.fir_no} updated", extra={"fir_id": fir.id, "status": fir.status})
        return fir

    def _assigned_case(self, case_id: int, judge_id: int) -> Case:
        case = repository.get_case(self.db, case_id)
        if case.judge_id != judge_id:
            raise AccessDeniedError(f"Judge {judge_id} is not assigned to case {case.case_no}")
        return case

    def add_statement(
        self,
        case_id: int,
        judge_id: int,
        statement_text: str,
        statement_by: Optional[str] = None,
    ) -> CaseStatement:
        """Record a statement on a case. Only the assigned judge may do so."""
        if not statement_text or not statement_text.strip():
            raise ValidationError("Statement text is required")

        case = self._assigned_case(case_id, judge_id)
        judge = repository.get_judge(self.db, judge_id)

        statement = CaseStatement(
            case_id=case.id,
            statement_by=statement_by or judge.full_name,
            statement_text=statement_text.strip(),
            statement_date=self.now(),
        )
        self.db.add(statement)
        self.db.commit()
        self.db.refresh(statement)
        logger.info(
            f"Statement added to case {case.case_no}",
            extra={"case_id": case.id, "statement_id": statement.id},
        )
        return statement

    def update_case(
        self,
        case_id: int,
        status: Optional[str] = None,
        hearing_date=None,
    ) -> Case:
        """Move an open case between open statuses or reschedule its hearing."""
        if status is not None and status not in OPEN_CASE_STATUSES:
            raise ValidationError(
                f"Invalid case status '{status}'. Use a verdict to close a case."
            )
        case = repository.get_case(self.db, case_id)
        if case.status in TERMINAL_CASE_STATUSES:
            chain_conflicts.labels(code=VERDICT_ALREADY_RECORDED).inc()
            raise ConflictError(
                f"Case {case.case_no} is closed with status {case.status}",
                VERDICT_ALREADY_RECORDED,
            )
        if status is not None:
            case.status = status
        if hearing_date is not None:
            case.hearing_date = normalize_timestamp(hearing_date)
        self.db.commit()
        self.db.refresh(case)
        return case

    def assign_judge(self, case_id: int, judge_id: int, court_id: Optional[int] = None) -> Case:
        """Reassign an open case to another judge of the same court.

        The case number is scoped to its court, so the new judge must sit there.
        court_id, when given, must be the case's court.
        """
        case = repository.get_case(self.db, case_id)
        if court_id is not None and case.court_id != court_id:
            raise AccessDeniedError(f"Case {case.case_no} belongs to another court")
        if case.status in TERMINAL_CASE_STATUSES:
            chain_conflicts.labels(code=VERDICT_ALREADY_RECORDED).inc()
            raise ConflictError(
                f"Case {case.case_no} is closed with status {case.status}",
                VERDICT_ALREADY_RECORDED,
            )

        judge = repository.get_judge(self.db, judge_id)
        if judge.court_id != case.court_id:
            raise ValidationError(
                f"Judge {judge_id} does not sit at the court of case {case.case_no}"
            )

        previous_judge_id = case.judge_id
        case.judge_id = judge.id
        self.db.commit()
        self.db.refresh(case)
        logger.info(
            f"Case {case.case_no} reassigned to {judge.full_name}",
            extra={"case_id": case.id, "judge_id": judge.id, "previous_judge_id": previous_judge_id},
        )
        return case

    def record_verdict(self, case_id: int, judge_id: int, verdict: str) -> Case:
        """Record the verdict once; the derived terminal status is final."""
        if not verdict or not verdict.strip():
            raise ValidationError("Verdict text is required")

        case = self._assigned_case(case_id, judge_id)
        new_status = derive_verdict_status(verdict)

        # Conditional update so two concurrent verdicts cannot both land
        result = self.db.execute(
            update(Case)
            .where(Case.id == case.id, Case.status.notin_(TERMINAL_CASE_STATUSES))
            .values(
                verdict=verdict.strip(),
                status=new_status,
                verdict_at=self.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            chain_conflicts.labels(code=VERDICT_ALREADY_RECORDED).inc()
            raise ConflictError(
                f"Case {case.case_no} already has a verdict",
                VERDICT_ALREADY_RECORDED,
            )

        self.db.commit()
        self.db.refresh(case)
        logger.info(
            f"Verdict recorded on case {case.case_no}: {new_status}",
            extra={"case_id": case.id, "status": new_status},
        )
        return case
