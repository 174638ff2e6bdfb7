"""Per-scope sequence allocation.

The counter row for (scope_kind, scope_id, year) is incremented in place, so
the row lock orders concurrent issuers within a scope. The allocator never
commits: the increment belongs to the caller's unit of work and rolls back
with it.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from sentinel_api.models import ScopeSequence

logger = logging.getLogger(__name__)


class SequenceAllocator:
    """Issue gap-free, monotonically increasing numbers per scope and year."""

    def __init__(self, db: Session):
        """Initialize allocator."""
        self.db = db

    def _scope_filter(self, scope_kind: str, scope_id: int, year: int):
        return (
            ScopeSequence.scope_kind == scope_kind,
            ScopeSequence.scope_id == scope_id,
            ScopeSequence.year == year,
        )

    def next(self, scope_kind: str, scope_id: int, year: int) -> int:
        """Reserve the next sequence number for the scope.

        Raises sqlalchemy IntegrityError when a concurrent issuer created the
        counter row first; the caller retries its unit of work.
        """
        result = self.db.execute(
            update(ScopeSequence)
            .where(*self._scope_filter(scope_kind, scope_id, year))
            .values(
                last_sequence=ScopeSequence.last_sequence + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.db.add(
                ScopeSequence(
                    scope_kind=scope_kind,
                    scope_id=scope_id,
                    year=year,
                    last_sequence=1,
                    updated_at=datetime.utcnow(),
                )
            )
            self.db.flush()
            sequence = 1
        else:
            sequence = self.db.execute(
                select(ScopeSequence.last_sequence).where(
                    *self._scope_filter(scope_kind, scope_id, year)
                )
            ).scalar_one()

        logger.debug(
            f"Allocated {scope_kind} sequence {sequence}",
            extra={"scope_kind": scope_kind, "scope_id": scope_id, "year": year},
        )
        return int(sequence)

    def peek(self, scope_kind: str, scope_id: int, year: int) -> int:
        """Last issued number for the scope, 0 when none."""
        value = self.db.execute(
            select(ScopeSequence.last_sequence).where(*self._scope_filter(scope_kind, scope_id, year))
        ).scalar_one_or_none()
        return int(value or 0)
