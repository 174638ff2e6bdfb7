"""Per-scope counter rows for identifier issuance."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from sentinel_api.db.base import Base


class ScopeSequence(Base):
    """Last issued sequence per (scope_kind, scope_id, year)."""

    __tablename__ = "scope_sequences"

    scope_kind = Column(String(20), primary_key=True)  # FIR, CASE
    scope_id = Column(Integer, primary_key=True)
    year = Column(Integer, primary_key=True)
    last_sequence = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
