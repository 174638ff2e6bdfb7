"""Chain linker: Reading -> Challan -> FIR -> Case, strictly 1:1.

Every link is a check-then-insert inside one unit of work, together with the
sequence allocation for FIR and Case numbers. A lost race surfaces either as a
UNIQUE violation or as a lock failure; the unit of work is rolled back, the
link is re-checked, and the work is retried or reported as a conflict.
"""

import logging
import random
import time
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.exc import OperationalError

from sentinel_api import repository
from sentinel_api.chain.numbering import SCOPE_CASE, SCOPE_FIR, format_case_no, format_fir_no
from sentinel_api.chain.sequence import SequenceAllocator
from sentinel_api.errors import (
    ALREADY_LINKED,
    SEQUENCE_CONTENTION,
    ChainError,
    ConflictError,
    IntegrityError,
    ValidationError,
)
from sentinel_api.integrity.canonical import normalize_timestamp
from sentinel_api.integrity.engine import SignatureEngine, get_signature_engine
from sentinel_api.models import Case, Challan, Fir
from sentinel_api.services.base import BaseService
from sentinel_api.utils.metrics import (
    allocation_duration,
    allocation_retries,
    chain_conflicts,
    integrity_violations,
    sequences_issued,
)

logger = logging.getLogger(__name__)

SCOPE_CHALLAN = "CHALLAN"

CHALLAN_STATUSES = ("Unpaid", "Paid", "Disputed")


class ChainLinker(BaseService):
    """Create chain links and mint their identifiers."""

    def __init__(self, db, settings=None, clock=None, engine: Optional[SignatureEngine] = None):
        """Initialize chain linker."""
        super().__init__(db, settings=settings, clock=clock)
        self.engine = engine or get_signature_engine()
        self.allocator = SequenceAllocator(db)

    def _backoff(self, attempt: int):
        base = self.settings.sequence_retry_backoff_ms / 1000.0
        time.sleep(base * attempt + random.uniform(0, base))

    def _conflict(self, message: str, code: str = ALREADY_LINKED) -> ConflictError:
        chain_conflicts.labels(code=code).inc()
        return ConflictError(message, code)

    def _run_unit_of_work(
        self,
        scope_kind: str,
        work: Callable[[], object],
        already_linked: Callable[[], bool],
        linked_message: str,
        exhausted_message: Optional[str] = None,
    ):
        """Run work() and commit, retrying on allocator or linkage races."""
        max_attempts = self.settings.sequence_max_attempts
        started = time.monotonic()

        try:
            for attempt in range(1, max_attempts + 1):
                try:
                    entity = work()
                    self.db.commit()
                    self.db.refresh(entity)
                    return entity
                except ChainError:
                    self.db.rollback()
                    raise
                except (DBIntegrityError, OperationalError) as e:
                    self.db.rollback()
                    if already_linked():
                        raise self._conflict(linked_message)
                    allocation_retries.labels(scope_kind=scope_kind).inc()
                    logger.info(
                        f"{scope_kind} unit of work lost a race, attempt {attempt}/{max_attempts}: "
                        f"{type(e).__name__}",
                        extra={"scope_kind": scope_kind, "attempt": attempt},
                    )
                    if attempt < max_attempts:
                        self._backoff(attempt)
        finally:
            allocation_duration.labels(scope_kind=scope_kind).observe(time.monotonic() - started)

        logger.error(
            f"{scope_kind} issuance gave up after {max_attempts} attempts",
            extra={"scope_kind": scope_kind, "attempts": max_attempts},
        )
        raise self._conflict(
            exhausted_message
            or f"Could not allocate a {scope_kind} number after {max_attempts} attempts; retry later",
            SEQUENCE_CONTENTION,
        )

    # Reading -> Challan

    def file_challan(
        self,
        officer_id: int,
        accused_id: int,
        vehicle_id: int,
        violation_id: int,
        emission_reading_id: Optional[int] = None,
    ) -> Challan:
        """File a challan, optionally on a signed emission reading."""

        def work():
            repository.get_officer(self.db, officer_id)
            repository.get_accused(self.db, accused_id)
            repository.get_vehicle(self.db, vehicle_id)
            repository.get_violation(self.db, violation_id)

            reading_signature = None
            if emission_reading_id is not None:
                reading = repository.get_reading(self.db, emission_reading_id)
                if repository.reading_has_challan(self.db, emission_reading_id):
                    raise self._conflict(
                        f"Emission reading {emission_reading_id} is already linked to a challan"
                    )
                if not self.engine.verify_reading(reading):
                    integrity_violations.labels(record_type="emission_reading").inc()
                    logger.warning(
                        f"Refusing challan on reading {reading.id}: signature mismatch",
                        extra={"reading_id": reading.id},
                    )
                    raise IntegrityError(
                        f"Emission reading {reading.id} failed signature verification"
                    )
                reading_signature = reading.signature_value

            issued_at = self.now()
            challan = Challan(
                officer_id=officer_id,
                accused_id=accused_id,
                vehicle_id=vehicle_id,
                violation_id=violation_id,
                emission_reading_id=emission_reading_id,
                issued_at=issued_at,
                due_at=issued_at + timedelta(days=self.settings.challan_due_days),
                status="Unpaid",
            )
            challan.signature_value = self.engine.sign_challan(challan, reading_signature)
            self.db.add(challan)
            self.db.flush()
            return challan

        challan = self._run_unit_of_work(
            SCOPE_CHALLAN,
            work,
            lambda: emission_reading_id is not None
            and repository.reading_has_challan(self.db, emission_reading_id),
            f"Emission reading {emission_reading_id} is already linked to a challan",
            f"Could not file the challan after {self.settings.sequence_max_attempts} attempts "
            "due to concurrent writes; retry later",
        )
        logger.info(
            f"Challan {challan.id} filed",
            extra={"challan_id": challan.id, "emission_reading_id": emission_reading_id},
        )
        return challan

    def set_challan_status(self, challan_id: int, status: str) -> Challan:
        """Change a challan's payment status, its only mutable field."""
        if status not in CHALLAN_STATUSES:
            raise ValidationError(
                f"Invalid challan status '{status}'. Allowed: {', '.join(CHALLAN_STATUSES)}"
            )
        challan = repository.get_challan(self.db, challan_id)
        challan.status = status
        self.db.commit()
        self.db.refresh(challan)
        return challan

    # Challan -> FIR

    def issue_fir(
        self,
        challan_id: int,
        station_id: int,
        informant_id: int,
        description: Optional[str] = None,
    ) -> Fir:
        """Mint a FIR for a cognizable challan."""

        def work():
            challan = repository.get_challan(self.db, challan_id)
            violation = repository.get_violation(self.db, challan.violation_id)
            if not violation.is_cognizable:
                raise ValidationError(
                    f"Cannot create FIR for non-cognizable violation '{violation.violation_type}'"
                )
            if repository.challan_has_fir(self.db, challan_id):
                raise self._conflict(f"Challan {challan_id} already has a FIR")

            station = repository.get_station(self.db, station_id)
            informant = repository.get_officer(self.db, informant_id)
            if informant.station_id != station.id:
                raise ValidationError(
                    f"Officer {informant_id} is not posted at station {station.station_code}"
                )

            filed_at = self.now()
            year = filed_at.year
            sequence = self.allocator.next(SCOPE_FIR, station.id, year)
            fir = Fir(
                fir_no=format_fir_no(station.station_code, year, sequence),
                station_id=station.id,
                year=year,
                sequence=sequence,
                challan_id=challan_id,
                informant_id=informant_id,
                filed_at=filed_at,
                status="Filed",
                description=description,
            )
            self.db.add(fir)
            self.db.flush()
            return fir

        fir = self._run_unit_of_work(
            SCOPE_FIR,
            work,
            lambda: repository.challan_has_fir(self.db, challan_id),
            f"Challan {challan_id} already has a FIR",
        )
        sequences_issued.labels(scope_kind=SCOPE_FIR).inc()
        logger.info(
            f"FIR {fir.fir_no} issued for challan {challan_id}",
            extra={"fir_id": fir.id, "challan_id": challan_id, "station_id": station_id},
        )
        return fir

    # FIR -> Case

    def issue_case(
        self,
        fir_id: int,
        judge_id: int,
        case_type: Optional[str] = None,
        hearing_date=None,
        court_id: Optional[int] = None,
    ) -> Case:
        """Open a case from a FIR, numbered within the judge's court.

        court_id, when given, must be the judge's court.
        """

        def work():
            repository.get_fir(self.db, fir_id)
            if repository.fir_has_case(self.db, fir_id):
                raise self._conflict(f"FIR {fir_id} already has a case")

            judge = repository.get_judge(self.db, judge_id)
            if judge.court_id is None:
                raise ValidationError(f"Judge {judge_id} is not assigned to a court")
            if court_id is not None and judge.court_id != court_id:
                raise ValidationError(f"Judge {judge_id} does not sit at court {court_id}")
            court = repository.get_court(self.db, judge.court_id)

            filed_at = self.now()
            year = filed_at.year
            sequence = self.allocator.next(SCOPE_CASE, court.id, year)
            case = Case(
                case_no=format_case_no(court.court_type, court.location, year, sequence),
                fir_id=fir_id,
                court_id=court.id,
                year=year,
                sequence=sequence,
                judge_id=judge.id,
                case_type=case_type or "Traffic Violation",
                status="Pending",
                hearing_date=normalize_timestamp(hearing_date)
                if hearing_date
                else filed_at + timedelta(days=self.settings.hearing_default_days),
                filed_at=filed_at,
            )
            self.db.add(case)
            self.db.flush()
            return case

        case = self._run_unit_of_work(
            SCOPE_CASE,
            work,
            lambda: repository.fir_has_case(self.db, fir_id),
            f"FIR {fir_id} already has a case",
        )
        sequences_issued.labels(scope_kind=SCOPE_CASE).inc()
        logger.info(
            f"Case {case.case_no} opened for FIR {fir_id}",
            extra={"case_id": case.id, "fir_id": fir_id, "court_id": case.court_id},
        )
        return case
